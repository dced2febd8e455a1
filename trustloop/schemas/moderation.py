from typing import Literal
from pydantic import BaseModel, Field

Sentiment = Literal["positive", "negative", "neutral"]
SuggestedAction = Literal["approve", "reject", "manual_review"]


class ModerationResult(BaseModel):
    """Moderation verdict, as returned by Gemini and by /reviews/moderate."""
    sentiment: Sentiment
    confidence: float = Field(ge=0.0, le=1.0)
    isSpam: bool
    spamConfidence: float = Field(ge=0.0, le=1.0)
    suggestedAction: SuggestedAction = "manual_review"
    reason: str = ""
    toxicity: float = Field(ge=0.0, le=1.0)
    language: str = "en"


class ParseError(BaseModel):
    """Gemini answered, but not with a usable verdict."""
    message: str
