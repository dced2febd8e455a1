from typing import Optional
import requests
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from trustloop.core.http import get_http
from trustloop.core.security import decode_access_token
from trustloop.db.session import get_session
from trustloop.models.shop import ShopifyStore
from trustloop.services.shop import ShopService

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


class ShopifyCallback(BaseModel):
    shop: str = Field(min_length=1)
    code: str = Field(min_length=1)
    hmac: Optional[str] = None
    host: Optional[str] = None

class ShopifyCallbackResponse(BaseModel):
    success: bool
    shop: Optional[str]
    domain: str
    token: str

def get_shop_service(session: Session = Depends(get_session), http: requests.Session = Depends(get_http)) -> ShopService:
    return ShopService(session, http)

@router.post("/shopify/callback", response_model=ShopifyCallbackResponse)
def shopify_callback(data: ShopifyCallback, service: ShopService = Depends(get_shop_service)):
    return service.complete_oauth(data.shop, data.code)

def get_current_store(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session)
) -> ShopifyStore:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not credentials:
        raise credentials_exception

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise credentials_exception

    store = session.exec(select(ShopifyStore).where(ShopifyStore.shop_domain == payload["sub"])).first()
    if store is None or not store.is_active:
        raise credentials_exception
    return store
