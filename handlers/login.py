import logging
from datetime import timedelta

from aiogram import F, Router, types
from aiogram.filters import BaseFilter, Command

from handlers.start import send_category_menu
from services import auth as auth_service
from services.provider import ProviderClient, ProviderError
from services.sessions import STAGE_AWAITING_EMAIL, UserSession
from utils.texts import (
    ASK_EMAIL_TEXT,
    DIRECTORY_UNAVAILABLE_TEXT,
    EMAIL_INVALID_TEXT,
    EMAIL_NOT_FOUND_TEXT,
    format_auth_success,
)

router = Router()
logger = logging.getLogger(__name__)


class StageFilter(BaseFilter):
    """Пропускает сообщение, только если сессия пользователя в нужной стадии."""

    def __init__(self, stage: str) -> None:
        self.stage = stage

    async def __call__(self, event: types.TelegramObject, user_session: UserSession | None = None) -> bool:
        return user_session is not None and user_session.stage == self.stage


@router.message(Command("login"))
async def login_entry(message: types.Message, user_session: UserSession, provider: ProviderClient) -> None:
    auth_service.start_authentication(user_session)
    await auth_service.refresh_directory(provider)
    await message.answer(ASK_EMAIL_TEXT)


@router.callback_query(F.data == "auth_start")
async def login_entry_cb(
    callback: types.CallbackQuery,
    user_session: UserSession,
    provider: ProviderClient,
) -> None:
    auth_service.start_authentication(user_session)
    await auth_service.refresh_directory(provider)
    await callback.message.answer(ASK_EMAIL_TEXT)
    await callback.answer()


@router.message(StageFilter(STAGE_AWAITING_EMAIL), F.text)
async def login_receive_email(
    message: types.Message,
    user_session: UserSession,
    provider: ProviderClient,
    auth_ttl: timedelta,
) -> None:
    outcome = await auth_service.resolve_email(
        provider,
        user_session,
        message.from_user.id,
        message.text,
        ttl=auth_ttl,
    )

    if outcome.status == auth_service.STATUS_INVALID:
        await message.answer(EMAIL_INVALID_TEXT)
        return
    if outcome.status == auth_service.STATUS_UNAVAILABLE:
        await message.answer(DIRECTORY_UNAVAILABLE_TEXT)
        return
    if outcome.status == auth_service.STATUS_NOT_FOUND:
        await message.answer(EMAIL_NOT_FOUND_TEXT)
        return

    record = outcome.record
    try:
        points = await provider.get_points(record.ispring_user_id)
    except ProviderError:
        logger.exception("Не удалось получить баланс после авторизации %s", record.ispring_user_id)
        points = None

    await message.answer(format_auth_success(record.display_name, points))
    await send_category_menu(message, message.from_user.id)
