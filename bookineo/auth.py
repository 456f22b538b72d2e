import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from bookineo import models
from bookineo.database import get_db
from bookineo.errors import AuthenticationError


logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"

bearer_scheme = HTTPBearer(auto_error=False)


class PasswordHasher:
    """bcrypt hashing through passlib."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        return self._context.verify(password, hashed_password)


class TokenCodec:
    """
    Signs and verifies JWTs.

    Every token carries a "type" claim so a password reset token can never be
    used as an access token and the other way round.
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm

    def encode(
        self, claims: Dict[str, Any], token_type: str, expires_delta: timedelta
    ) -> str:
        to_encode = claims.copy()
        to_encode.update(
            {
                "type": token_type,
                "exp": datetime.now(timezone.utc) + expires_delta,
            }
        )
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def decode(self, token: str, token_type: str) -> Dict[str, Any]:
        """
        Verify signature, expiry and token type.

        Raises:
            JWTError: if the token is malformed, expired, or of another type
        """
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        if payload.get("type") != token_type:
            raise JWTError(f"Expected a {token_type} token")
        return payload


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> models.User:
    """
    Dependency resolving the bearer token to the calling user.

    Raises:
        AuthenticationError: 401 if the token is missing, invalid, expired,
            or belongs to a user that no longer exists
    """
    if credentials is None:
        raise AuthenticationError(
            "Authentication token is missing. Include it in the 'Authorization: Bearer' header."
        )

    try:
        payload = codec.decode(credentials.credentials, ACCESS_TOKEN_TYPE)
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise AuthenticationError("Invalid or expired token")

    user = db.get(models.User, user_id)
    if user is None:
        logger.warning("Token presented for missing user %s", user_id)
        raise AuthenticationError("Invalid or expired token")
    return user
