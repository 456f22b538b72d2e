from fastapi import Request

from bookineo.services.books import BookService
from bookineo.services.categories import CategoryService
from bookineo.services.messages import MessageService
from bookineo.services.rentals import RentalService
from bookineo.services.users import UserService


# Services are built once in create_app() and kept on app.state; these
# dependencies hand them to the routes, and tests can swap them via
# app.dependency_overrides.


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_message_service(request: Request) -> MessageService:
    return request.app.state.message_service


def get_book_service(request: Request) -> BookService:
    return request.app.state.book_service


def get_category_service(request: Request) -> CategoryService:
    return request.app.state.category_service


def get_rental_service(request: Request) -> RentalService:
    return request.app.state.rental_service
