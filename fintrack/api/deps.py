"""
FastAPI dependencies (DB session, authentication)
"""
from fastapi import Depends, Request, HTTPException, status
from sqlalchemy.orm import Session

from fintrack.infrastructure.db.session import get_db as _get_db
from fintrack.infrastructure.db.models import User


# Re-export get_db
get_db = _get_db


def require_user(request: Request) -> bool:
    """
    Session gate for navigation routes

    Returns:
        True if a user is signed in
        False otherwise

    Usage in routes:
        if not require_user(request):
            return RedirectResponse("/login")
    """
    return bool(request.session.get("user_id"))


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Current user from the session (for API endpoints)

    Args:
        request: Incoming request carrying the signed session cookie
        db: Request-scoped session

    Returns:
        The signed-in User

    Raises:
        HTTPException(401): not signed in, or the user no longer exists

    Usage:
        @router.get("/accounts")
        def list_accounts(user: User = Depends(get_current_user)):
            ...
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user
