import logging
from groq import AsyncGroq
from app.core.config import settings

logger = logging.getLogger(__name__)

# One shared client for the process
_groq_client = AsyncGroq(api_key=settings.GROQ_API_KEY, timeout=30.0) if settings.GROQ_API_KEY else None

if _groq_client is None:
    logger.warning("⚠️ GROQ_API_KEY not set, AI plans will use the fallback payload")


def get_groq_client():
    """The shared AsyncGroq client, or None when no API key is configured."""
    return _groq_client
