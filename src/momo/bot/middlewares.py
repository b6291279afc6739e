"""Bot middlewares."""

import logging
from typing import Any, Awaitable, Callable, Optional

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, User

from momo.crypto import get_codec
from momo.ledger.database import get_db
from momo.ledger.repository import WalletRepository

logger = logging.getLogger(__name__)


class UserRegistrationMiddleware(BaseMiddleware):
    """Upserts the sending user before every handled update."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        user: Optional[User] = data.get("event_from_user")

        if user is not None and not user.is_bot:
            async with get_db() as session:
                repo = WalletRepository(session, get_codec())
                await repo.upsert_user(
                    telegram_id=str(user.id),
                    username=user.username,
                    first_name=user.first_name,
                    last_name=user.last_name,
                )

        return await handler(event, data)
