import base64
import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from aerodeliver import crud, models
from aerodeliver.config import settings
from aerodeliver.database import get_db

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")

MIN_PASSWORD_LENGTH = 6

SESSION_PURPOSE = "session"
RECOVERY_PURPOSE = "recovery"


class RoleMismatch(Exception):
    def __init__(self, stored_role: str):
        self.stored_role = stored_role
        super().__init__(f"Account is registered as {stored_role}.")


def _prehash_password(password: str) -> bytes:
    # base64 keeps the digest free of NUL bytes and under bcrypt's 72 byte limit
    return base64.b64encode(hashlib.sha256(password.encode('utf-8')).digest())


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        password_prehashed = _prehash_password(plain_password)
        hashed_bytes = hashed_password.encode('utf-8')
        return bcrypt.checkpw(password_prehashed, hashed_bytes)
    except ValueError as e:
        logger.warning("Could not verify password hash: %s", e)
        return False


def get_password_hash(password: str) -> str:
    password_prehashed = _prehash_password(password)
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_prehashed, salt)
    return hashed.decode('utf-8')


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt


def decode_token(token: str, purpose: str) -> dict:
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if payload.get("purpose") != purpose:
        raise JWTError("Unexpected token purpose")
    return payload


def authenticate_user(db: Session, email: str, password: str):
    user = crud.get_user_by_email(db, email=email)
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def start_session(db: Session, user: models.User) -> str:
    auth_session = crud.create_auth_session(db, user_id=user.id, session_id=str(uuid.uuid4()))
    return create_access_token(
        data={"sub": user.email, "jti": auth_session.id, "purpose": SESSION_PURPOSE},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )


def sign_in(db: Session, email: str, password: str, role: str):
    """Password sign-in for the role tab the user picked.

    Returns ``(user, token)`` or ``None`` for bad credentials. A user whose
    stored role differs from ``role`` is signed straight back out and
    :class:`RoleMismatch` is raised.
    """
    user = authenticate_user(db, email, password)
    if not user:
        return None
    token = start_session(db, user)
    if user.role and user.role != role:
        sign_out(db, token)
        raise RoleMismatch(user.role)
    return user, token


def sign_out(db: Session, token: str) -> bool:
    return crud.revoke_auth_session(db, session_id_from_token(token))


def session_id_from_token(token: str) -> Optional[str]:
    try:
        return decode_token(token, SESSION_PURPOSE).get("jti")
    except JWTError:
        return None


def create_recovery_token(db: Session, user: models.User) -> str:
    """Issue a one-time recovery token.

    The token is backed by an auth session row, so it stops working once the
    password reset revokes the user's sessions.
    """
    recovery = crud.create_auth_session(db, user_id=user.id, session_id=str(uuid.uuid4()))
    return create_access_token(
        data={"sub": user.email, "jti": recovery.id, "purpose": RECOVERY_PURPOSE},
        expires_delta=timedelta(minutes=settings.recovery_token_expire_minutes),
    )


def recovery_link(token: str) -> str:
    return f"{settings.frontend_url}/#/reset-password#access_token={token}"


def user_from_recovery_token(db: Session, token: str) -> Optional[models.User]:
    try:
        payload = decode_token(token, RECOVERY_PURPOSE)
    except JWTError:
        return None
    email = payload.get("sub")
    recovery_id = payload.get("jti")
    if email is None or recovery_id is None:
        return None
    if not crud.is_session_active(db, recovery_id):
        logger.warning("Rejected a recovery token that was already used or revoked")
        return None
    return crud.get_user_by_email(db, email=email)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token, SESSION_PURPOSE)
        email: str = payload.get("sub")
        session_id: str = payload.get("jti")
        if email is None or session_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    if not crud.is_session_active(db, session_id):
        raise credentials_exception
    user = crud.get_user_by_email(db, email=email)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(
    current_user: models.User = Depends(get_current_user)
) -> models.User:
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def require_role(role: str):
    async def dependency(current_user: models.User = Depends(get_current_active_user)) -> models.User:
        if current_user.role != role:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
        return current_user
    return dependency


get_current_customer = require_role("customer")
get_current_owner = require_role("owner")
