import base64
import hashlib
import hmac
from datetime import timedelta
from typing import Optional
from jose import jwt, JWTError

from trustloop.core.config import settings
from trustloop.core.timeutils import utcnow


def verify_shopify_webhook(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check X-Shopify-Hmac-Sha256: base64 HMAC-SHA256 of the raw request body."""
    if not signature:
        return False
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    computed = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(computed, signature)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
