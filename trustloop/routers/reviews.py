from typing import List, Optional
import requests
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from trustloop.core.http import get_http
from trustloop.db.session import get_session
from trustloop.models.review import Review, ReviewStatus
from trustloop.models.shop import ShopifyStore
from trustloop.routers.auth import get_current_store
from trustloop.schemas.moderation import ModerationResult
from trustloop.services.moderation import ModerationService
from trustloop.services.review import ReviewService

router = APIRouter()

class ModerationRequest(BaseModel):
    reviewId: str = Field(min_length=1)
    reviewText: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    geminiApiKey: str = Field(min_length=1)

class ReviewSubmission(BaseModel):
    token: str = Field(min_length=1)
    customerName: str = Field(min_length=1)
    customerEmail: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = None
    content: str = Field(min_length=1)
    photos: List[str] = []
    videos: List[str] = []

class ReviewSubmitted(BaseModel):
    id: str
    status: ReviewStatus

def get_moderation_service(session: Session = Depends(get_session), http: requests.Session = Depends(get_http)) -> ModerationService:
    return ModerationService(session, http)

def get_review_service(session: Session = Depends(get_session)) -> ReviewService:
    return ReviewService(session)

@router.post("/moderate", response_model=ModerationResult)
def moderate_review(data: ModerationRequest, service: ModerationService = Depends(get_moderation_service)):
    return service.moderate(data.reviewId, data.reviewText, data.rating, data.geminiApiKey)

@router.post("/submit", response_model=ReviewSubmitted, status_code=201)
def submit_review(data: ReviewSubmission, service: ReviewService = Depends(get_review_service)):
    """Public endpoint behind the emailed review link."""
    return service.submit_review(
        token=data.token,
        customer_name=data.customerName.strip(),
        customer_email=data.customerEmail.strip(),
        rating=data.rating,
        content=data.content.strip(),
        title=data.title,
        photos=data.photos,
        videos=data.videos
    )

@router.get("/")
def list_reviews(
    status: Optional[ReviewStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: ShopifyStore = Depends(get_current_store),
    service: ReviewService = Depends(get_review_service)
):
    return service.list_reviews(store.shop_domain, status=status, search=search, page=page, limit=limit)

@router.put("/{review_id}/approve", response_model=Review)
def approve_review(
    review_id: str,
    store: ShopifyStore = Depends(get_current_store),
    service: ReviewService = Depends(get_review_service)
):
    return service.set_status(store.shop_domain, review_id, ReviewStatus.APPROVED)

@router.put("/{review_id}/reject", response_model=Review)
def reject_review(
    review_id: str,
    store: ShopifyStore = Depends(get_current_store),
    service: ReviewService = Depends(get_review_service)
):
    return service.set_status(store.shop_domain, review_id, ReviewStatus.REJECTED)
