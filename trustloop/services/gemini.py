import requests
from typing import Optional

from trustloop.core.config import settings
from trustloop.core.errors import UpstreamError


class GeminiError(UpstreamError):
    pass


class GeminiClient:
    def __init__(self, http: requests.Session, api_key: str, model: Optional[str] = None):
        self.http = http
        self.api_key = api_key
        self.model = model or settings.GEMINI_MODEL

    def generate(self, prompt: str, temperature: float = 0.1, max_output_tokens: int = 1000) -> str:
        """Run one generateContent call and return the text of the first candidate."""
        url = f"{settings.GEMINI_API_URL}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "topK": 1,
                "topP": 1,
                "maxOutputTokens": max_output_tokens,
            },
        }
        response = self.http.post(
            url,
            params={"key": self.api_key},
            json=body,
            timeout=settings.HTTP_TIMEOUT
        )
        if not response.ok:
            raise GeminiError(f"Gemini API error: {response.status_code}")

        data = response.json()
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise GeminiError("Gemini API returned no content")
