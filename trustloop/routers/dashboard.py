from typing import List, Optional
import requests
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import Session, select

from trustloop.core.http import get_http
from trustloop.db.session import get_session
from trustloop.models.campaign import EmailCampaign, CampaignStatus
from trustloop.models.order import Order
from trustloop.models.product import Product
from trustloop.models.review import Review, ReviewStatus
from trustloop.models.shop import ShopifyStore
from trustloop.routers.auth import get_current_store
from trustloop.services.campaign import CampaignService

router = APIRouter()

class DashboardStats(BaseModel):
    shopName: Optional[str]
    totalReviews: int
    pendingReviews: int
    approvedReviews: int
    rejectedReviews: int
    averageRating: float
    scheduledCampaigns: int
    sentCampaigns: int
    totalProducts: int
    totalOrders: int

def get_campaign_service(session: Session = Depends(get_session), http: requests.Session = Depends(get_http)) -> CampaignService:
    return CampaignService(session, http)

@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(
    store: ShopifyStore = Depends(get_current_store),
    session: Session = Depends(get_session)
):
    """Get dashboard statistics for the signed-in shop"""
    shop = store.shop_domain

    status_counts = dict(session.exec(
        select(Review.status, func.count(Review.id)).where(Review.shop_domain == shop).group_by(Review.status)
    ).all())
    average_rating = session.exec(
        select(func.avg(Review.rating)).where(Review.shop_domain == shop)
    ).first()

    campaign_counts = dict(session.exec(
        select(EmailCampaign.status, func.count(EmailCampaign.id)).where(EmailCampaign.shop_domain == shop).group_by(EmailCampaign.status)
    ).all())

    total_products = session.exec(select(func.count(Product.id)).where(Product.shop_domain == shop)).first() or 0
    total_orders = session.exec(select(func.count(Order.id)).where(Order.shop_domain == shop)).first() or 0

    return DashboardStats(
        shopName=store.shop_name,
        totalReviews=sum(status_counts.values()),
        pendingReviews=status_counts.get(ReviewStatus.PENDING, 0),
        approvedReviews=status_counts.get(ReviewStatus.APPROVED, 0),
        rejectedReviews=status_counts.get(ReviewStatus.REJECTED, 0),
        averageRating=round(float(average_rating), 2) if average_rating else 0.0,
        scheduledCampaigns=campaign_counts.get(CampaignStatus.SCHEDULED, 0),
        sentCampaigns=campaign_counts.get(CampaignStatus.SENT, 0),
        totalProducts=total_products,
        totalOrders=total_orders
    )

@router.get("/campaigns", response_model=List[EmailCampaign])
def list_campaigns(
    status: Optional[CampaignStatus] = None,
    store: ShopifyStore = Depends(get_current_store),
    service: CampaignService = Depends(get_campaign_service)
):
    return service.list_campaigns(store.shop_domain, status=status)
