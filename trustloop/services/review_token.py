"""
Review-request tokens embedded in emailed review links.

Two formats:

* legacy: base64 of ``order_id:customer_id:product_id``. Not signed and never
  expires; anyone holding or guessing a token can submit a review for that
  order.
* signed: an HS256 JWT over the same ids with an expiry, enabled with
  ``REVIEW_TOKEN_SIGNED``. In this mode legacy tokens are refused.
"""
import base64
from datetime import timedelta
from typing import NamedTuple, Optional

from jose import jwt, JWTError

from trustloop.core.config import settings
from trustloop.core.timeutils import utcnow


class ReviewTokenData(NamedTuple):
    order_id: str
    customer_id: str
    product_id: str


def encode_review_token(order_id: str, customer_id: str, product_id: str) -> str:
    raw = f"{order_id}:{customer_id}:{product_id}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_review_token(token: str) -> Optional[ReviewTokenData]:
    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (ValueError, TypeError):
        # binascii.Error and UnicodeDecodeError are both ValueErrors
        return None
    parts = decoded.split(":", 2)
    if len(parts) != 3:
        return None
    return ReviewTokenData(*parts)


def sign_review_token(order_id: str, customer_id: str, product_id: str, expires_delta: Optional[timedelta] = None) -> str:
    issued_at = utcnow()
    expire = issued_at + (expires_delta or timedelta(days=settings.REVIEW_TOKEN_EXPIRE_DAYS))
    claims = {
        "oid": order_id,
        "cid": customer_id,
        "pid": product_id,
        "iat": issued_at,
        "exp": expire,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_review_token(token: str) -> Optional[ReviewTokenData]:
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return ReviewTokenData(str(claims["oid"]), str(claims["cid"]), str(claims["pid"]))
    except (JWTError, KeyError):
        return None


def create_review_token(order_id: str, customer_id: str, product_id: str) -> str:
    """Token in the format selected by REVIEW_TOKEN_SIGNED."""
    if settings.REVIEW_TOKEN_SIGNED:
        return sign_review_token(order_id, customer_id, product_id)
    return encode_review_token(order_id, customer_id, product_id)


def read_review_token(token: str) -> Optional[ReviewTokenData]:
    if settings.REVIEW_TOKEN_SIGNED:
        return verify_review_token(token)
    return decode_review_token(token)
