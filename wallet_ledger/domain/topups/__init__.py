"""Top-up domain exports"""

from .models import TopupRequest
from .service import TopupService

__all__ = [
    "TopupRequest",
    "TopupService",
]
