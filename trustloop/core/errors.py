class UpstreamError(Exception):
    """An external API (Shopify, Gemini, SendGrid) answered with an error."""
