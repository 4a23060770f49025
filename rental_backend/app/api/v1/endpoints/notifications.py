"""
Notification API Endpoints.
"""

from fastapi import APIRouter, Depends

from rental_backend.app.schemas.notification import TelegramStatusResponse
from rental_backend.app.services.notification_service import get_notifier

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/telegram/status", response_model=TelegramStatusResponse)
async def telegram_status(notifier=Depends(get_notifier)):
    """Is the Telegram bot reachable, and is a chat configured?"""
    return await notifier.channel.status()
