from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import desc, func, or_
from sqlmodel import Session, select

from trustloop.core.logger import log
from trustloop.core.timeutils import utcnow
from trustloop.models.order import Order
from trustloop.models.review import Review, ReviewStatus
from trustloop.services.review_token import read_review_token


class ReviewService:
    def __init__(self, session: Session):
        self.session = session

    def submit_review(
        self,
        token: str,
        customer_name: str,
        customer_email: str,
        rating: int,
        content: str,
        title: Optional[str] = None,
        photos: Optional[List[str]] = None,
        videos: Optional[List[str]] = None
    ) -> Review:
        """Create a pending review from an emailed review-request link."""
        token_data = read_review_token(token)
        if not token_data:
            raise HTTPException(status_code=400, detail="Invalid review request token")

        order = self.session.exec(
            select(Order).where(Order.shopify_order_id == token_data.order_id)
        ).first()

        review = Review(
            shop_domain=order.shop_domain if order else None,
            shopify_product_id=token_data.product_id or None,
            shopify_order_id=token_data.order_id or None,
            customer_name=customer_name,
            customer_email=customer_email,
            rating=rating,
            title=title,
            content=content,
            photos=photos or [],
            videos=videos or [],
            verified_purchase=True,
            source="email",
            status=ReviewStatus.PENDING
        )
        self.session.add(review)
        self.session.commit()
        self.session.refresh(review)
        log.info(f"Review {review.id} submitted for order {token_data.order_id}")
        return review

    def list_reviews(
        self,
        shop_domain: str,
        status: Optional[ReviewStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> dict:
        conditions = [Review.shop_domain == shop_domain]
        if status:
            conditions.append(Review.status == status)
        if search and search.strip():
            # Case-insensitive match on customer, product or review text
            pattern = f"%{search.strip()}%"
            conditions.append(or_(
                Review.customer_name.ilike(pattern),
                Review.shopify_product_id.ilike(pattern),
                Review.title.ilike(pattern),
                Review.content.ilike(pattern)
            ))

        total = self.session.exec(select(func.count(Review.id)).where(*conditions)).one()
        offset = (page - 1) * limit
        reviews = self.session.exec(
            select(Review).where(*conditions).order_by(desc(Review.created_at)).offset(offset).limit(limit)
        ).all()

        return {
            "reviews": reviews,
            "total": total,
            "page": page,
            "pages": (total + limit - 1) // limit
        }

    def set_status(self, shop_domain: str, review_id: str, status: ReviewStatus) -> Review:
        review = self.session.get(Review, review_id)
        if not review or review.shop_domain != shop_domain:
            raise HTTPException(status_code=404, detail="Review not found")

        # pending -> approved | rejected, nothing after that
        if review.status != ReviewStatus.PENDING:
            raise HTTPException(status_code=409, detail=f"Review already {review.status.value}")

        review.status = status
        review.updated_at = utcnow()
        self.session.add(review)
        self.session.commit()
        self.session.refresh(review)
        return review
