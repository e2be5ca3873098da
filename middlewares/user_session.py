from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from services.sessions import SessionStore


class UserSessionMiddleware(BaseMiddleware):
    """
    Подкладывает в хендлер сессию пользователя (user_session) и держит
    блокировку пользователя, пока апдейт обрабатывается.
    Апдейты одного пользователя идут строго по очереди, разных — параллельно.
    """

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        telegram_user = data.get("event_from_user") or getattr(event, "from_user", None)

        if telegram_user is None:
            return await handler(event, data)

        async with self.store.lock(telegram_user.id):
            data["user_session"] = self.store.get_or_create(telegram_user.id)
            return await handler(event, data)
