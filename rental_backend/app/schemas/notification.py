"""
Notification channel schemas.
"""

from pydantic import BaseModel
from typing import Optional


class TelegramStatusResponse(BaseModel):
    """Telegram connectivity probe."""
    ok: bool
    username: Optional[str] = None
    name: Optional[str] = None
    bot_id: Optional[int] = None
    error: Optional[str] = None
    chat_configured: bool = False
