"""Authentication service for passwords, accounts and bearer tokens."""

import logging

from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from filehost.errors import (
    AuthError,
    ClaimParseError,
    InvalidCredentials,
    InvalidToken,
    MissingToken,
    UserAlreadyExists,
    UserNotFound,
)
from filehost.models.user import User
from filehost.services.tokens import TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email."""
    return db.query(User).filter(User.email == email).first()


def register_user(db: Session, username: str, email: str, password: str) -> User:
    """Create a new user.

    The lookup only short-circuits the common case; the unique constraints on
    ``users`` decide concurrent registrations.
    """
    existing = (
        db.query(User.id).filter(or_(User.email == email, User.username == username)).first()
    )
    if existing:
        raise UserAlreadyExists()

    try:
        password_hash = get_password_hash(password)
    except ValueError as e:
        raise AuthError(f"Password hashing error: {e}") from e

    user = User(username=username, email=email, password_hash=password_hash)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise UserAlreadyExists() from None
    except SQLAlchemyError as e:
        db.rollback()
        raise AuthError(f"Database error: {e}") from e
    db.refresh(user)

    logger.info(f"Registered user {user.id} ({user.username})")
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Authenticate a user by email and password.

    Unknown email and wrong password raise the same error and both pay for
    one bcrypt verification.
    """
    user = get_user_by_email(db, email)
    if user is None:
        pwd_context.dummy_verify()
    elif verify_password(password, user.password_hash):
        return user

    logger.warning("Failed login attempt")
    raise InvalidCredentials()


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an ``Authorization`` header value."""
    if authorization is None:
        raise MissingToken()
    if not authorization.startswith(BEARER_PREFIX):
        raise InvalidToken()
    return authorization[len(BEARER_PREFIX) :]


def resolve_user(db: Session, token_service: TokenService, authorization: str | None) -> User:
    """Resolve an ``Authorization`` header to the user it was issued for."""
    token = extract_bearer_token(authorization)
    claims = token_service.verify(token)

    try:
        user_id = int(claims.sub)
    except ValueError as e:
        raise ClaimParseError() from e

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise UserNotFound()
    return user
