"""
Authentication routes (register, login, logout) and the session gate
"""
import logging

from fastapi import APIRouter, Request, Form, Depends, status
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, require_user
from fintrack.application.users import RegisterUserUseCase, AuthenticationError, authenticate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/")
def index(request: Request):
    """Session gate: signed-in users go to the dashboard, others to /login"""
    if not require_user(request):
        return RedirectResponse("/login", status_code=302)
    return RedirectResponse("/api/v1/dashboard", status_code=302)


@router.get("/login")
def login_get(request: Request):
    """Sign-in entry point the session gate redirects to"""
    return {
        "authenticated": require_user(request),
        "detail": "POST email and password as form fields to /login",
    }


@router.post("/login")
def login_post(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        user = authenticate(db, email, password)
    except AuthenticationError as e:
        logger.info("Failed sign-in for %s", email)
        return JSONResponse({"detail": str(e)}, status_code=status.HTTP_401_UNAUTHORIZED)

    request.session["user_id"] = user.id
    logger.info("User %s signed in", user.id)
    return RedirectResponse("/", status_code=302)


@router.post("/register")
def register(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    """Sign up and sign in right away"""
    user_id = RegisterUserUseCase(db).execute(email=email, password=password)
    request.session["user_id"] = user_id
    return RedirectResponse("/", status_code=302)


@router.get("/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse("/login", status_code=302)
