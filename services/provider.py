"""Клиент iSpring Learn: токен, справочник пользователей и баллы."""

from __future__ import annotations

import asyncio
import json
import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Callable

import aiohttp

logger = logging.getLogger(__name__)

TOKEN_PATH = "/api/v3/token"
USERS_PATH = "/user"
POINTS_PATH = "/gamification/points"
WITHDRAW_PATH = "/gamification/points/withdraw"

# Токен обновляем заранее, если до истечения осталось не больше минуты
TOKEN_SAFETY_MARGIN = 60


class ProviderError(RuntimeError):
    """Ошибка обращения к iSpring (сеть, статус ответа, разбор XML)."""


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None


def _text(element: ET.Element | None) -> str | None:
    if element is None or element.text is None:
        return None
    value = element.text.strip()
    return value or None


def parse_users_xml(payload: str) -> list[Identity]:
    """
    Разбирает выгрузку пользователей:
    <userProfile><userId/><fields><field><name>EMAIL</name><value/></field>...</fields></userProfile>
    Профили без userId или EMAIL пропускаются.
    """
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise ProviderError(f"Invalid users XML: {exc}") from exc

    identities: list[Identity] = []
    for profile in root.iter("userProfile"):
        user_id = _text(profile.find("userId"))
        fields: dict[str, str] = {}
        for field in profile.iter("field"):
            name = _text(field.find("name"))
            value = _text(field.find("value"))
            if name and value:
                fields[name.upper()] = value

        email = fields.get("EMAIL")
        if not user_id or not email:
            continue

        identities.append(
            Identity(
                user_id=user_id,
                email=email,
                first_name=fields.get("FIRST_NAME"),
                last_name=fields.get("LAST_NAME"),
            )
        )
    return identities


def parse_points_xml(payload: str, user_id: str) -> int | None:
    """Баланс пользователя или None, если поле отсутствует или не число."""
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise ProviderError(f"Invalid points XML: {exc}") from exc

    candidates = list(root.iter("userPointsInfo")) or [root]
    for info in candidates:
        info_user_id = _text(info.find("userId"))
        if info_user_id is not None and info_user_id != user_id:
            continue
        raw_points = _text(info.find("points"))
        if raw_points is None:
            continue
        try:
            return int(float(raw_points))
        except ValueError:
            logger.warning("Unparseable points value %r for user %s", raw_points, user_id)
            return None
    return None


def build_withdraw_xml(user_id: str, amount: int, reason: str) -> str:
    request = ET.Element("request")
    ET.SubElement(request, "userId").text = str(user_id)
    ET.SubElement(request, "amount").text = str(int(amount))
    ET.SubElement(request, "reason").text = reason
    return ET.tostring(request, encoding="unicode")


class ProviderClient:
    """
    Один экземпляр на процесс: держит кеш токена и кеш справочника пользователей.
    Кеши не защищены блокировкой, параллельное обновление просто перезапишет значение.
    """

    def __init__(
        self,
        base_url: str,
        client_id: str | None,
        client_secret: str | None,
        *,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._clock = clock
        self._token: str | None = None
        self._token_expires_at: float = 0.0
        self.directory: list[Identity] = []

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: Any = None,
        data: Any = None,
    ) -> tuple[int, str]:
        url = f"{self.base_url}{path}"
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, headers=headers, params=params, data=data
                ) as response:
                    return response.status, await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProviderError(f"{method} {path} failed: {exc}") from exc

    async def _fetch_token(self) -> tuple[str, int]:
        if not self.client_id or not self.client_secret:
            raise ProviderError("iSpring credentials are not configured")

        status, body = await self._request(
            "POST",
            TOKEN_PATH,
            headers={"Accept": "application/json"},
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "client_credentials",
            },
        )
        if status != 200:
            raise ProviderError(f"Token endpoint returned status={status}")

        try:
            payload = json.loads(body)
            return str(payload["access_token"]), int(payload.get("expires_in") or 0)
        except (ValueError, KeyError, TypeError) as exc:
            raise ProviderError(f"Invalid token response: {exc}") from exc

    async def get_access_token(self) -> str:
        now = self._clock()
        if self._token and self._token_expires_at - now > TOKEN_SAFETY_MARGIN:
            return self._token

        token, lifetime = await self._fetch_token()
        self._token = token
        self._token_expires_at = now + lifetime - TOKEN_SAFETY_MARGIN
        logger.info("iSpring access token refreshed, lifetime=%ss", lifetime)
        return token

    async def _auth_headers(self) -> dict[str, str]:
        token = await self.get_access_token()
        return {"Authorization": f"Bearer {token}", "Accept": "application/xml"}

    async def list_users(self) -> list[Identity]:
        """Перечитывает справочник целиком. При ошибке старый кеш остаётся на месте."""
        headers = await self._auth_headers()
        status, body = await self._request("GET", USERS_PATH, headers=headers)
        if status != 200:
            raise ProviderError(f"Users endpoint returned status={status}")

        self.directory = parse_users_xml(body)
        logger.info("iSpring directory refreshed: %s users", len(self.directory))
        return self.directory

    def find_identity(self, email: str) -> Identity | None:
        needle = (email or "").strip().lower()
        if not needle:
            return None
        for identity in self.directory:
            if identity.email.strip().lower() == needle:
                return identity
        return None

    async def get_points(self, user_id: str) -> int | None:
        headers = await self._auth_headers()
        status, body = await self._request(
            "GET",
            POINTS_PATH,
            headers=headers,
            params={"userIds[]": user_id},
        )
        if status != 200:
            raise ProviderError(f"Points endpoint returned status={status}")
        return parse_points_xml(body, user_id)

    async def withdraw_points(self, user_id: str, amount: int, reason: str) -> bool:
        """
        Списание баллов. Ответ без идентификатора операции, поэтому таймаут
        после применения списания неотличим от отказа.
        """
        try:
            headers = await self._auth_headers()
            headers["Content-Type"] = "application/xml"
            status, body = await self._request(
                "POST",
                WITHDRAW_PATH,
                headers=headers,
                data=build_withdraw_xml(user_id, amount, reason),
            )
        except ProviderError:
            logger.exception("Withdraw of %s points for %s failed", amount, user_id)
            return False

        if 200 <= status < 300:
            return True

        logger.error("Withdraw rejected status=%s user=%s body=%s", status, user_id, body[:500])
        return False
