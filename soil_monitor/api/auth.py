import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from soil_monitor.core.config import settings
from soil_monitor.core.deps import get_db, get_current_user, get_mail_sender
from soil_monitor.core.errors import MailDeliveryError
from soil_monitor.core.mailer import RESET_SUBJECT, MailSender, password_reset_body, reset_link
from soil_monitor.core.security import (
    RESET_PURPOSE,
    create_access_token,
    create_reset_token,
    decode_token,
    hash_password,
    password_fingerprint,
    verify_password,
)
from soil_monitor.models.user import User
from soil_monitor.schemas.token import Token, RegisterOut
from soil_monitor.schemas.user import ForgotPasswordIn, ResetPasswordIn, UserCreate, UserOut, UserUpdateMe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_for(user: User) -> str:
    return create_access_token(sub=str(user.id), role=user.role)


@router.post("/register", response_model=RegisterOut, status_code=status.HTTP_201_CREATED)
def register(body: UserCreate, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == body.email).first():
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        name=body.name.strip(),
        email=body.email,
        password_hash=hash_password(body.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"access_token": _token_for(user), "token_type": "bearer", "user": user}

@router.post("/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    # username=email (OAuth2 convention)
    user = db.query(User).filter(User.email == form_data.username).first()
    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if user.active is False:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    return {"access_token": _token_for(user), "token_type": "bearer"}

@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user

@router.put("/me", response_model=UserOut)
def update_me(
    body: UserUpdateMe,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Updates the logged-in user's name and, optionally, e-mail.
    """
    changed = False

    if body.name is not None and body.name.strip() and body.name != current_user.name:
        current_user.name = body.name.strip()
        changed = True

    if body.email is not None and body.email != current_user.email:
        taken = (
            db.query(User)
            .filter(User.email == body.email, User.id != current_user.id)
            .first()
        )
        if taken:
            raise HTTPException(status_code=400, detail="E-mail already in use")
        current_user.email = body.email
        changed = True

    if not changed:
        return current_user

    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return current_user


# ---------- password reset ----------

RESET_SENT = "If the email exists, a password reset link has been sent"


def _user_for_reset_token(db: Session, token: str) -> Optional[User]:
    claims = decode_token(token, purpose=RESET_PURPOSE)
    if claims is None:
        return None
    try:
        user = db.get(User, UUID(claims["sub"]))
    except ValueError:
        return None
    if user is None or user.active is False:
        return None
    if claims.get("pwd") != password_fingerprint(user.password_hash):
        return None
    return user


@router.post("/forgot-password")
def forgot_password(
    body: ForgotPasswordIn,
    db: Session = Depends(get_db),
    mailer: MailSender = Depends(get_mail_sender),
):
    """
    Mails a one-hour reset link. The answer is the same whether or not the
    e-mail belongs to an account.
    """
    user = db.query(User).filter(User.email == body.email).first()
    if not user or user.active is False:
        return {"message": RESET_SENT}

    token = create_reset_token(sub=str(user.id), password_hash=user.password_hash)
    link = reset_link(settings.FRONTEND_URL, token)
    try:
        mailer.send(
            user.email,
            RESET_SUBJECT,
            password_reset_body(link, settings.PASSWORD_RESET_EXPIRE_MINUTES),
        )
    except MailDeliveryError as exc:
        logger.error("Password reset mail not delivered: %s", exc)
    return {"message": RESET_SENT}


@router.post("/reset-password")
def reset_password(body: ResetPasswordIn, db: Session = Depends(get_db)):
    user = _user_for_reset_token(db, body.token)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user.password_hash = hash_password(body.new_password)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Password reset for %s", user.email)
    return {"message": "Password reset successfully", "user": UserOut.model_validate(user)}


@router.get("/verify-reset-token/{token}")
def verify_reset_token(token: str, db: Session = Depends(get_db)):
    user = _user_for_reset_token(db, token)
    if user is None:
        return {"valid": False}
    return {"valid": True, "email": user.email}
