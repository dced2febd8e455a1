"""
Review moderation.

Gemini classifies the review; the verdict is then adjusted by a few fixed
heuristics and mapped to a final action, in this order:

1. parse the model output (fallback verdict from the star rating if unusable)
2. apply_heuristics: links/emails mark spam, very short 5-star reviews raise spam confidence
3. decide_action: spam > toxicity > low confidence > approve
"""
import json
import re
from typing import Union

import requests
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from trustloop.core.logger import log
from trustloop.core.timeutils import utcnow
from trustloop.models.review import Review
from trustloop.schemas.moderation import ModerationResult, ParseError
from trustloop.services.gemini import GeminiClient

JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
LINK_PATTERN = re.compile(r"https?://")
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

SPAM_THRESHOLD = 0.7
TOXICITY_THRESHOLD = 0.7
MIN_CONFIDENCE = 0.5

PROMPT_TEMPLATE = """Analyze this customer review for sentiment, spam detection, and toxicity. Provide a JSON response with the following format:

{{
  "sentiment": "positive|negative|neutral",
  "confidence": 0.0-1.0,
  "isSpam": boolean,
  "spamConfidence": 0.0-1.0,
  "suggestedAction": "approve|reject|manual_review",
  "reason": "brief explanation",
  "toxicity": 0.0-1.0,
  "language": "detected language code"
}}

Review text: "{review_text}"
Rating: {rating}/5 stars

Consider the following factors:
- Sentiment should match the star rating (5 stars = positive, 1-2 stars = negative, 3 stars = neutral)
- Spam indicators: generic text, repeated phrases, unrelated content, fake enthusiasm
- Toxicity: offensive language, inappropriate content, personal attacks
- Language: detect the primary language of the review"""


def build_prompt(review_text: str, rating: int) -> str:
    return PROMPT_TEMPLATE.format(review_text=review_text, rating=rating)


def parse_verdict(generated_text: str) -> Union[ModerationResult, ParseError]:
    """Pull the JSON object out of the model output (it may be wrapped in markdown)."""
    match = JSON_OBJECT.search(generated_text or "")
    if not match:
        return ParseError(message="No valid JSON found in Gemini response")
    try:
        return ModerationResult.model_validate(json.loads(match.group(0)))
    except json.JSONDecodeError as e:
        return ParseError(message=f"Invalid JSON in Gemini response: {e}")
    except ValidationError as e:
        return ParseError(message=f"Unexpected verdict shape: {e.error_count()} errors")


def fallback_verdict(rating: int) -> ModerationResult:
    if rating >= 4:
        sentiment = "positive"
    elif rating <= 2:
        sentiment = "negative"
    else:
        sentiment = "neutral"
    return ModerationResult(
        sentiment=sentiment,
        confidence=0.7,
        isSpam=False,
        spamConfidence=0.1,
        suggestedAction="manual_review",
        reason="AI analysis failed, requires manual review",
        toxicity=0.1,
        language="en",
    )


def apply_heuristics(result: ModerationResult, review_text: str, rating: int) -> ModerationResult:
    word_count = len(review_text.split())
    has_links = LINK_PATTERN.search(review_text) is not None
    has_email = EMAIL_PATTERN.search(review_text) is not None

    update = {}
    if has_links or has_email:
        update["spamConfidence"] = max(result.spamConfidence, 0.8)
        update["isSpam"] = True

    # Short text alone does not mark the review as spam
    if word_count < 3 and rating == 5:
        update["spamConfidence"] = max(update.get("spamConfidence", result.spamConfidence), 0.6)

    return result.model_copy(update=update)


def decide_action(result: ModerationResult) -> ModerationResult:
    if result.isSpam or result.spamConfidence > SPAM_THRESHOLD:
        action, reason = "reject", "Detected as spam"
    elif result.toxicity > TOXICITY_THRESHOLD:
        action, reason = "reject", "Contains toxic content"
    elif result.confidence < MIN_CONFIDENCE:
        action, reason = "manual_review", "Low confidence analysis"
    else:
        action, reason = "approve", "Passed automated moderation"
    return result.model_copy(update={"suggestedAction": action, "reason": reason})


class ModerationService:
    def __init__(self, session: Session, http: requests.Session):
        self.session = session
        self.http = http

    def moderate(self, review_id: str, review_text: str, rating: int, gemini_api_key: str) -> ModerationResult:
        review = self.session.get(Review, review_id)
        if not review:
            raise HTTPException(status_code=404, detail="Review not found")

        client = GeminiClient(self.http, gemini_api_key)
        generated = client.generate(build_prompt(review_text, rating))

        parsed = parse_verdict(generated)
        if isinstance(parsed, ParseError):
            log.warning(f"Falling back to rating heuristic for review {review_id}: {parsed.message}")
            parsed = fallback_verdict(rating)

        result = decide_action(apply_heuristics(parsed, review_text, rating))
        self.save_verdict(review, result)
        log.info(f"Review {review_id} moderated: {result.suggestedAction} ({result.reason})")
        return result

    def save_verdict(self, review: Review, result: ModerationResult):
        now = utcnow()
        review.sentiment = result.sentiment
        review.confidence_score = result.confidence
        review.is_spam = result.isSpam
        review.spam_confidence = result.spamConfidence
        review.toxicity_score = result.toxicity
        review.language = result.language
        review.moderation_status = result.suggestedAction
        review.moderation_reason = result.reason
        review.moderated_at = now
        review.updated_at = now
        try:
            self.session.add(review)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            log.error(f"Error updating review {review.id}: {e}")
            raise
