from bookineo import models
from bookineo.auth import PasswordHasher, TokenCodec
from bookineo.config import Settings, settings
from bookineo.database import engine
from bookineo.errors import register_exception_handlers
from bookineo.mailer import Mailer
from bookineo.routes import books, categories, messages, rentals, users
from bookineo.services.books import BookService
from bookineo.services.categories import CategoryService
from bookineo.services.messages import MessageService
from bookineo.services.rentals import RentalService
from bookineo.services.users import UserService

import logging
from datetime import timedelta
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


logger = logging.getLogger(__name__)

models.Base.metadata.create_all(bind=engine)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def install_services(
    app: FastAPI,
    config: Settings,
    mailer: Optional[Mailer] = None,
    hasher: Optional[PasswordHasher] = None,
) -> None:
    """
    Build the stateless services once and keep them on app.state.

    Collaborators can be passed in to replace the defaults, which is how
    the tests plug in a recording mailer and a cheap bcrypt cost.
    """
    mailer = mailer or Mailer(
        api_key=config.resend_api_key,
        sender=config.email_from,
        frontend_url=config.frontend_url,
        api_url=config.resend_api_url,
        timeout=config.email_timeout,
    )
    hasher = hasher or PasswordHasher(rounds=config.bcrypt_rounds)
    codec = TokenCodec(config.jwt_secret, config.jwt_algorithm)

    app.state.token_codec = codec
    app.state.user_service = UserService(
        hasher=hasher,
        codec=codec,
        mailer=mailer,
        access_token_ttl=timedelta(minutes=config.access_token_expire_minutes),
        reset_token_ttl=timedelta(minutes=config.reset_token_expire_minutes),
    )
    app.state.message_service = MessageService(mailer)
    app.state.book_service = BookService()
    app.state.category_service = CategoryService()
    app.state.rental_service = RentalService()


def create_app(config: Settings = settings) -> FastAPI:
    configure_logging(config.log_level)

    application = FastAPI(
        title="Bookineo API",
        description="Book rental marketplace: users, books, categories, rentals and messages",
        version="1.0.0",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)
    install_services(application, config)

    application.include_router(users.router)
    application.include_router(books.router)
    application.include_router(categories.router)
    application.include_router(rentals.router)
    application.include_router(messages.router)

    @application.get("/health")
    def health_check():
        """
        Health check endpoint for monitoring and load balancers.

        Returns:
            Simple status message indicating the service is running
        """
        return {"status": "healthy", "service": "bookineo-api"}

    logger.info("Bookineo API ready")
    return application


app = create_app()
