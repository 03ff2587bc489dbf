"""Проверка JWT внешнего провайдера идентификации (HS256, общий секрет)."""
from datetime import datetime, timedelta
from typing import Optional

import jwt

from bakery.config import settings


def create_access_token(subject: str, email: str = "") -> str:
    """Токен в формате провайдера — для локальной разработки и тестов."""
    now = datetime.utcnow()
    expire = now + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": subject,
        "email": email,
        "aud": settings.jwt_audience,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(
        payload,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except jwt.PyJWTError:
        return None
