from bookineo import models
from bookineo import schemas
from bookineo.auth import get_current_user
from bookineo.database import get_db
from bookineo.dependencies import get_user_service
from bookineo.services.users import RESET_REQUESTED, UserService

from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, status


router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/register", response_model=schemas.User, status_code=status.HTTP_201_CREATED
)
def register(
    user: schemas.UserCreate,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    """
    Create an account.

    Returns:
        The created user, without password

    Raises:
        409 if the email is already registered, 422 on malformed input
    """
    return service.register(db, user)


@router.post("/login", response_model=schemas.Token)
def login(
    credentials: schemas.LoginRequest,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    """
    Exchange email and password for a bearer token.

    Raises:
        401 with the same message whether the email or the password is wrong
    """
    token, user = service.login(db, credentials.email, credentials.password)
    return {"token": token, "token_type": "bearer", "user": user}


@router.post("/request-password-reset", response_model=schemas.Detail)
def request_password_reset(
    body: schemas.PasswordResetRequest,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    """Always answers the same way, whether or not the email is registered."""
    service.request_password_reset(db, body.email)
    return {"message": RESET_REQUESTED}


@router.post("/reset-password", response_model=schemas.Detail)
def reset_password(
    body: schemas.PasswordReset,
    db: Session = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    service.reset_password(db, body.token, body.new_password)
    return {"message": "Password has been reset"}


@router.get("/profile", response_model=schemas.User)
def get_own_profile(current_user: models.User = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=schemas.User)
def update_own_profile(
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.update_profile(db, current_user, current_user.id, user_update)


@router.delete("/profile", response_model=schemas.Detail)
def delete_own_account(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(db, current_user, current_user.id)
    return {"message": "User deleted"}


@router.get("/{user_id}", response_model=schemas.User)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.get_profile(db, user_id)


@router.put("/{user_id}", response_model=schemas.User)
def update_user(
    user_id: int,
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """
    Partially update a profile.

    Raises:
        403 if the caller is not the user being updated
    """
    return service.update_profile(db, current_user, user_id, user_update)


@router.delete("/{user_id}", response_model=schemas.Detail)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """
    Delete an account with everything it owns.

    Raises:
        403 if the caller is not the user being deleted,
        409 while one of the user's rentals is open
    """
    service.delete_user(db, current_user, user_id)
    return {"message": "User deleted"}
