import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from aerodeliver import crud, mailer, schemas
from aerodeliver.auth import (
    MIN_PASSWORD_LENGTH,
    RoleMismatch,
    create_recovery_token,
    oauth2_scheme,
    recovery_link,
    sign_in,
    sign_out,
    user_from_recovery_token,
)
from aerodeliver.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=schemas.UserResponse, status_code=201)
def register(user: schemas.UserCreate, db: Session = Depends(get_db)):
    try:
        if not user.email or not user.name.strip() or not user.password:
            raise HTTPException(status_code=400, detail="All required fields must be filled in")
        if len(user.password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
        db_user = crud.get_user_by_email(db, email=user.email)
        if db_user:
            raise HTTPException(status_code=400, detail="Email already registered")
        new_user = crud.create_user(db=db, user=user)
        logger.info("Registered %s account %s", new_user.role, new_user.id)
        return new_user
    except HTTPException:
        raise
    except Exception:
        logger.exception("Registration failed")
        raise HTTPException(status_code=500, detail="Server error during registration")


@router.post("/login", response_model=schemas.Token)
def login(user_credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    try:
        result = sign_in(db, user_credentials.email, user_credentials.password, user_credentials.role)
    except RoleMismatch as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except Exception:
        logger.exception("Login failed")
        raise HTTPException(status_code=500, detail="Server error during login")
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user, access_token = result
    return {"access_token": access_token, "token_type": "bearer", "role": user.role}


@router.post("/logout", response_model=schemas.Message)
def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    sign_out(db, token)
    return {"message": "Signed out"}


@router.post("/password-reset", response_model=schemas.Message)
def request_password_reset(request: schemas.PasswordResetRequest, db: Session = Depends(get_db)):
    user = crud.get_user_by_email(db, email=request.email)
    if user:
        link = recovery_link(create_recovery_token(db, user))
        try:
            mailer.send_recovery_link(user.name, user.email, link)
        except mailer.MailerError:
            raise HTTPException(status_code=502, detail="Failed to send reset link. Please try again later.")
    return {"message": "Reset link sent."}


@router.post("/password-reset/confirm", response_model=schemas.Message)
def confirm_password_reset(request: schemas.PasswordResetConfirm, db: Session = Depends(get_db)):
    if request.password != request.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if len(request.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    user = user_from_recovery_token(db, request.access_token)
    if user is None:
        raise HTTPException(
            status_code=400,
            detail="Auth session missing! The link may have expired or is invalid. Please request a new one.",
        )
    crud.set_password(db, user, request.password)
    crud.revoke_user_sessions(db, user.id)
    return {"message": "Password updated. Please sign in with your new password."}
