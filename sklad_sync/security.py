import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sklad_sync import config

bearer_optional = HTTPBearer(auto_error=False)


def require_sync_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_optional)) -> None:
    """
    Если в .env задан SYNC_API_TOKEN, запросы к /sync должны нести его в Authorization: Bearer.
    """
    expected = config.SYNC_API_TOKEN
    if not expected:
        return
    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный или отсутствующий токен",
            headers={"WWW-Authenticate": "Bearer"},
        )
