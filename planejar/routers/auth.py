from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
import secrets
import logging

from planejar.auth import get_password_hash, verify_password
from planejar.config import settings
from planejar.db import get_db
from planejar.deps import get_current_active_user
from planejar.exceptions import AuthenticationError, AuthorizationError, PasswordChangeRequired, ValidationError
from planejar.models import PasswordResetToken, User
from planejar.rate_limit import AUTH_RATE_LIMIT, PASSWORD_RESET_RATE_LIMIT, limiter
from planejar.schemas import (
    AuthResponse, ChangePasswordRequest, ForgotPasswordRequest, LoginRequest, MessageResponse,
    ResetPasswordRequest, UserResponse,
)
from planejar.services.email_service import send_password_reset_email
from planejar.utils.cookie_auth import clear_auth_cookie, set_auth_cookie

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "Se o e-mail estiver cadastrado, enviaremos um link para redefinir a senha"


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(login_data: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Login with email and password.

    Accounts still on a provisional password get PASSWORD_CHANGE_REQUIRED
    instead of a token.
    """
    user = db.query(User).filter(User.email == login_data.email.lower()).first()
    if not user or not verify_password(login_data.password, user.password_hash):
        logger.info("Failed login attempt", extra={"path": "/auth/login"})
        raise AuthenticationError("E-mail ou senha incorretos")
    if not user.is_active:
        raise AuthorizationError("Conta de usuário inativa")
    if user.requires_password_change:
        raise PasswordChangeRequired(str(user.id))

    token = set_auth_cookie(response, user.email)
    logger.info("User logged in", extra={"user_id": str(user.id)})
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/change-password", response_model=AuthResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def change_password(data: ChangePasswordRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Set a new password and log in.

    Also the way out of PASSWORD_CHANGE_REQUIRED, so the caller may be
    anonymous: the current password (the provisional one, for new clients)
    is always checked.
    """
    if not data.current_password:
        raise ValidationError("Informe a senha atual")
    user = db.query(User).filter(User.id == data.user_id).first()
    if not user or not user.is_active:
        raise AuthenticationError()
    if not verify_password(data.current_password, user.password_hash):
        raise AuthenticationError("Senha atual incorreta")
    if verify_password(data.new_password, user.password_hash):
        raise ValidationError("A nova senha deve ser diferente da atual")

    user.password_hash = get_password_hash(data.new_password)
    user.requires_password_change = False
    db.commit()
    db.refresh(user)

    token = set_auth_cookie(response, user.email)
    logger.info("Password changed", extra={"user_id": str(user.id)})
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(PASSWORD_RESET_RATE_LIMIT)
def forgot_password(password_data: ForgotPasswordRequest, request: Request, db: Session = Depends(get_db)):
    """Request a password reset email"""
    user = db.query(User).filter(User.email == password_data.email.lower()).first()

    # Same answer either way so emails can't be enumerated
    if not user:
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user.id).delete()
    reset_token = secrets.token_urlsafe(32)
    db.add(PasswordResetToken(
        user_id=user.id,
        token=reset_token,
        expires_at=datetime.utcnow() + timedelta(hours=settings.PASSWORD_RESET_TTL_HOURS),
    ))
    db.commit()

    sent = send_password_reset_email(to_email=user.email, reset_token=reset_token, user_name=user.name)
    logger.info("Password reset requested (email sent: %s)", sent, extra={"user_id": str(user.id)})
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Reset password using a valid token"""
    token_record = db.query(PasswordResetToken).filter(
        PasswordResetToken.token == data.token,
        PasswordResetToken.used == False,  # noqa: E712
        PasswordResetToken.expires_at > datetime.utcnow()
    ).first()
    if not token_record:
        raise ValidationError("Link de redefinição inválido ou expirado")

    user = token_record.user
    user.password_hash = get_password_hash(data.new_password)
    user.requires_password_change = False
    token_record.used = True
    db.commit()
    return MessageResponse(message="Senha redefinida com sucesso")


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.post("/logout", response_model=MessageResponse, status_code=status.HTTP_200_OK)
def logout(response: Response):
    clear_auth_cookie(response)
    return MessageResponse(message="Sessão encerrada")
