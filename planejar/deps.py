from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from planejar.db import get_db
from planejar.auth import decode_access_token
from planejar.models import User
from planejar.utils.cookie_auth import get_token_from_cookie

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current user from JWT token (header or cookie)"""
    token = credentials.credentials if credentials else get_token_from_cookie(request)
    if not token:
        raise _unauthorized("Não autenticado")

    payload = decode_access_token(token)
    if payload is None or not payload.get("sub"):
        raise _unauthorized("Token inválido ou expirado")

    user = db.query(User).filter(User.email == payload["sub"]).first()
    if user is None:
        raise _unauthorized("Usuário não encontrado")

    request.state.user_id = str(user.id)
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário inativo"
        )
    return current_user
