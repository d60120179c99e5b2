import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from aerodeliver import crud, models, schemas
from aerodeliver.auth import (
    MIN_PASSWORD_LENGTH,
    get_current_active_user,
    oauth2_scheme,
    session_id_from_token,
    verify_password,
)
from aerodeliver.database import get_db
from aerodeliver.pricing import phone_is_valid

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=schemas.UserResponse)
def read_user_me(current_user: models.User = Depends(get_current_active_user)):
    return current_user


@router.patch("/me", response_model=schemas.UserResponse)
def update_user_me(
    user_update: schemas.UserUpdate,
    current_user: models.User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    errors = {}
    if user_update.name is not None and not user_update.name.strip():
        errors["name"] = "Name is required."
    if user_update.phone is not None and not phone_is_valid(user_update.phone):
        errors["phone"] = "Enter a valid phone number."
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors})
    return crud.update_user(db, user_id=current_user.id, user_update=user_update)


@router.post("/me/password", response_model=schemas.Message)
def change_password(
    passwords: schemas.PasswordChange,
    token: str = Depends(oauth2_scheme),
    current_user: models.User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    if not passwords.new_password or passwords.new_password != passwords.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords must match.")
    if len(passwords.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    if not verify_password(passwords.old_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    crud.set_password(db, current_user, passwords.new_password)
    revoked = crud.revoke_user_sessions(db, current_user.id, keep=session_id_from_token(token))
    logger.info("Password changed for user %s, %s other sessions signed out", current_user.id, revoked)
    return {"message": "Password changed"}
