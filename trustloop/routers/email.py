from typing import Any, Dict, Optional
import requests
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from trustloop.core.http import get_http
from trustloop.db.session import get_session
from trustloop.models.campaign import CampaignType
from trustloop.services.campaign import CampaignService

router = APIRouter()

class SendCampaignRequest(BaseModel):
    campaignId: int
    customerEmail: str = Field(min_length=1)
    templateType: CampaignType
    orderId: Optional[str] = None
    productId: Optional[str] = None
    customData: Optional[Dict[str, Any]] = None
    emailApiKey: str = Field(min_length=1)

class SendCampaignResponse(BaseModel):
    success: bool
    message: str

def get_campaign_service(session: Session = Depends(get_session), http: requests.Session = Depends(get_http)) -> CampaignService:
    return CampaignService(session, http)

@router.post("/send-campaign", response_model=SendCampaignResponse)
def send_campaign(data: SendCampaignRequest, service: CampaignService = Depends(get_campaign_service)):
    return service.send_campaign(
        campaign_id=data.campaignId,
        customer_email=data.customerEmail,
        template_type=data.templateType,
        email_api_key=data.emailApiKey,
        order_id=data.orderId,
        product_id=data.productId,
        custom_data=data.customData
    )
