import base64
from typing import Any, Dict, List, Optional

import requests
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from trustloop.core.config import settings
from trustloop.core.logger import log
from trustloop.core.timeutils import utcnow
from trustloop.models.campaign import EmailCampaign, EmailTemplate, EmailTracking, CampaignStatus, CampaignType
from trustloop.models.order import Order
from trustloop.models.product import Product
from trustloop.models.shop import ShopifyStore
from trustloop.services.email import render_template, send_email
from trustloop.services.review_token import create_review_token


class CampaignService:
    def __init__(self, session: Session, http: requests.Session):
        self.session = session
        self.http = http

    def list_campaigns(self, shop_domain: str, status: Optional[CampaignStatus] = None) -> List[EmailCampaign]:
        query = select(EmailCampaign).where(EmailCampaign.shop_domain == shop_domain)
        if status:
            query = query.where(EmailCampaign.status == status)
        return self.session.exec(query.order_by(EmailCampaign.scheduled_date)).all()

    def build_variables(
        self,
        campaign: EmailCampaign,
        customer_email: str,
        order: Optional[Order],
        product: Optional[Product],
        order_id: Optional[str],
        product_id: Optional[str],
        custom_data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        store = self.session.exec(
            select(ShopifyStore).where(ShopifyStore.shop_domain == campaign.shop_domain)
        ).first()

        token = create_review_token(order_id or "", customer_email, product_id or "")
        unsubscribe = base64.b64encode(customer_email.encode("utf-8")).decode("ascii")

        variables = {
            "customer_name": (order.customer_first_name if order else None) or "Valued Customer",
            "customer_email": customer_email,
            "product_title": product.title if product else "Your Purchase",
            "product_image": (product.image_url if product else None) or "",
            "order_number": (order.order_number if order else None) or "",
            "shop_name": (store.shop_name if store else None) or "Our Store",
            "review_url": f"{settings.FRONTEND_URL}/review/{token}",
            "unsubscribe_url": f"{settings.FRONTEND_URL}/unsubscribe/{unsubscribe}",
        }
        variables.update(custom_data or {})
        return variables

    def send_campaign(
        self,
        campaign_id: int,
        customer_email: str,
        template_type: CampaignType,
        email_api_key: str,
        order_id: Optional[str] = None,
        product_id: Optional[str] = None,
        custom_data: Optional[Dict[str, Any]] = None
    ) -> dict:
        campaign = self.session.get(EmailCampaign, campaign_id)
        if not campaign:
            raise HTTPException(status_code=404, detail="Campaign not found")

        template = self.session.exec(
            select(EmailTemplate).where(
                EmailTemplate.template_type == template_type,
                EmailTemplate.shop_domain == campaign.shop_domain
            )
        ).first()
        if not template:
            raise HTTPException(status_code=404, detail="Email template not found")

        order = None
        if order_id:
            order = self.session.exec(
                select(Order).where(
                    Order.shop_domain == campaign.shop_domain,
                    Order.shopify_order_id == order_id
                )
            ).first()

        product = None
        if product_id:
            product = self.session.exec(
                select(Product).where(
                    Product.shop_domain == campaign.shop_domain,
                    Product.shopify_product_id == product_id
                )
            ).first()

        variables = self.build_variables(campaign, customer_email, order, product, order_id, product_id, custom_data)
        subject = render_template(template.subject, variables)
        body = render_template(template.html_content, variables)

        send_email(
            self.http,
            email_api_key,
            to_email=customer_email,
            subject=subject,
            body=body,
            from_email=template.from_email,
            from_name=template.from_name
        )

        # The email is already out; bookkeeping failures are logged, not raised
        self._mark_sent(campaign, customer_email, template_type)

        return {"success": True, "message": "Email sent successfully"}

    def _mark_sent(self, campaign: EmailCampaign, customer_email: str, template_type: CampaignType):
        campaign_id = campaign.id
        now = utcnow()
        try:
            campaign.status = CampaignStatus.SENT
            campaign.sent_at = now
            campaign.updated_at = now
            self.session.add(campaign)
            self.session.add(EmailTracking(
                campaign_id=campaign_id,
                customer_email=customer_email,
                template_type=template_type.value,
                status="sent",
                sent_at=now
            ))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error(f"Error updating campaign {campaign_id} after send: {e}")
