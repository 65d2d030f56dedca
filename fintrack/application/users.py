"""
User sign-up and sign-in
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fintrack.application.categories import EnsureDefaultCategoriesUseCase
from fintrack.application.errors import ValidationError, ConflictError
from fintrack.auth import hash_password, verify_password, normalize_email, get_user_by_email
from fintrack.infrastructure.db.models import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class UserValidationError(ValidationError):
    pass


class AuthenticationError(Exception):
    """Wrong email or password"""
    pass


class RegisterUserUseCase:
    """
    Use case: sign up with email and password, then seed default categories
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, email: str, password: str) -> int:
        email = normalize_email(email)
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise UserValidationError("Invalid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise UserValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        if get_user_by_email(self.db, email):
            raise ConflictError("Email already registered")

        user = User(email=email, password_hash=hash_password(password))
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Email already registered")

        EnsureDefaultCategoriesUseCase(self.db).execute(user.id)
        logger.info("User %s registered", user.id)
        return user.id


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Raises:
        AuthenticationError: unknown email or wrong password
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    return user
