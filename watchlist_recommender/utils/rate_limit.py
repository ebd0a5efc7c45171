"""Rate limiting utilities"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import settings

# Recommendation generation runs every scorer; keep it behind a tighter limit
GENERATE_LIMIT = "10/minute"

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"],
    storage_uri=f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/1",
    strategy="fixed-window",
    in_memory_fallback_enabled=True,
)
