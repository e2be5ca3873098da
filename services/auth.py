"""Авторизация покупателей по email из справочника iSpring."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select

from database import get_session
from models import TelegramUser
from services.provider import Identity, ProviderClient, ProviderError
from services.sessions import STAGE_AWAITING_EMAIL, UserSession

logger = logging.getLogger(__name__)

DEFAULT_AUTH_TTL_HOURS = 720

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

STATUS_AUTHORIZED = "authorized"
STATUS_NOT_FOUND = "not_found"
STATUS_INVALID = "invalid"
STATUS_UNAVAILABLE = "unavailable"


@dataclass
class AuthOutcome:
    status: str
    record: TelegramUser | None = None
    email: str | None = None


def is_authorized(record: TelegramUser | None, now: datetime) -> bool:
    return record is not None and now < record.expires_at


def normalize_email(text: str | None) -> str:
    return (text or "").strip().lower()


def get_record(telegram_id: int) -> TelegramUser | None:
    with get_session() as session:
        return session.scalar(select(TelegramUser).where(TelegramUser.telegram_id == int(telegram_id)))


def get_authorization(telegram_id: int, now: datetime | None = None) -> TelegramUser | None:
    record = get_record(telegram_id)
    if not is_authorized(record, now or datetime.utcnow()):
        return None
    return record


def save_authorization(
    telegram_id: int,
    identity: Identity,
    *,
    ttl: timedelta,
    now: datetime | None = None,
) -> TelegramUser:
    now = now or datetime.utcnow()
    with get_session() as session:
        record = session.scalar(select(TelegramUser).where(TelegramUser.telegram_id == int(telegram_id)))
        if record:
            record.email = identity.email
            record.ispring_user_id = identity.user_id
            record.first_name = identity.first_name
            record.last_name = identity.last_name
            record.expires_at = now + ttl
            record.updated_at = now
        else:
            record = TelegramUser(
                telegram_id=int(telegram_id),
                email=identity.email,
                ispring_user_id=identity.user_id,
                first_name=identity.first_name,
                last_name=identity.last_name,
                expires_at=now + ttl,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
        session.flush()
        session.refresh(record)
        return record


def start_authentication(session: UserSession) -> None:
    session.reset_auth()
    session.stage = STAGE_AWAITING_EMAIL


async def refresh_directory(provider: ProviderClient) -> bool:
    try:
        await provider.list_users()
    except ProviderError:
        logger.exception("Не удалось обновить справочник пользователей iSpring")
        return False
    return True


async def resolve_email(
    provider: ProviderClient,
    session: UserSession,
    telegram_id: int,
    text: str | None,
    *,
    ttl: timedelta = timedelta(hours=DEFAULT_AUTH_TTL_HOURS),
    now: datetime | None = None,
) -> AuthOutcome:
    """
    Обработка текста в состоянии awaiting_email.
    Пока совпадение не найдено, пользователь остаётся в awaiting_email, число попыток не ограничено.
    """
    email = normalize_email(text)
    session.pending_email = email

    if not EMAIL_RE.match(email):
        return AuthOutcome(STATUS_INVALID, email=email)

    if not provider.directory and not await refresh_directory(provider):
        return AuthOutcome(STATUS_UNAVAILABLE, email=email)

    identity = provider.find_identity(email)
    if identity is None:
        logger.info("Email %s не найден в справочнике (telegram_id=%s)", email, telegram_id)
        return AuthOutcome(STATUS_NOT_FOUND, email=email)

    session.matched_identity = identity
    record = save_authorization(telegram_id, identity, ttl=ttl, now=now)
    session.reset_auth()
    logger.info("telegram_id=%s авторизован как %s", telegram_id, identity.user_id)
    return AuthOutcome(STATUS_AUTHORIZED, record=record, email=email)


async def require_authorization(
    provider: ProviderClient,
    telegram_id: int,
    now: datetime | None = None,
) -> TelegramUser | None:
    """Проверка перед защищёнными действиями. Без авторизации обновляем справочник для повторного входа."""
    record = get_authorization(telegram_id, now)
    if record is not None:
        return record

    await refresh_directory(provider)
    return None
