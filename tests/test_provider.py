from __future__ import annotations

import asyncio
import xml.etree.ElementTree as ET

import pytest

from services.provider import (
    TOKEN_SAFETY_MARGIN,
    Identity,
    ProviderClient,
    ProviderError,
    build_withdraw_xml,
    parse_points_xml,
    parse_users_xml,
)

USERS_XML = """
<response>
  <userProfile>
    <userId>u-1</userId>
    <fields>
      <field><name>EMAIL</name><value>Ivan@Example.com</value></field>
      <field><name>FIRST_NAME</name><value>Иван</value></field>
      <field><name>LAST_NAME</name><value>Петров</value></field>
    </fields>
  </userProfile>
  <userProfile>
    <userId>u-2</userId>
    <fields>
      <field><name>FIRST_NAME</name><value>Без почты</value></field>
    </fields>
  </userProfile>
  <userProfile>
    <userId>u-3</userId>
    <fields>
      <field><name>email</name><value>anna@example.com</value></field>
    </fields>
  </userProfile>
</response>
"""


class FakeClock:
    def __init__(self) -> None:
        self.now = 10_000.0

    def __call__(self) -> float:
        return self.now


def make_client(clock=None) -> ProviderClient:
    return ProviderClient("http://ispring.test/", "client", "secret", clock=clock or FakeClock())


def test_parse_users_xml_skips_profiles_without_email():
    identities = parse_users_xml(USERS_XML)

    assert identities == [
        Identity(user_id="u-1", email="Ivan@Example.com", first_name="Иван", last_name="Петров"),
        Identity(user_id="u-3", email="anna@example.com"),
    ]


def test_parse_users_xml_rejects_garbage():
    with pytest.raises(ProviderError):
        parse_users_xml("<response><userProfile>")


def test_parse_points_xml_returns_balance_for_user():
    payload = """
    <response>
      <userPointsInfo><userId>other</userId><points>5</points></userPointsInfo>
      <userPointsInfo><userId>u-1</userId><points>120</points></userPointsInfo>
    </response>
    """

    assert parse_points_xml(payload, "u-1") == 120


def test_parse_points_xml_unknown_is_not_zero():
    assert parse_points_xml("<response><userPointsInfo><userId>u-1</userId></userPointsInfo></response>", "u-1") is None
    assert parse_points_xml("<response><points>много</points></response>", "u-1") is None


def test_build_withdraw_xml():
    root = ET.fromstring(build_withdraw_xml("u-1", 80, "Заказ"))

    assert root.tag == "request"
    assert root.findtext("userId") == "u-1"
    assert root.findtext("amount") == "80"
    assert root.findtext("reason") == "Заказ"


def test_access_token_is_cached_until_safety_margin(monkeypatch: pytest.MonkeyPatch):
    clock = FakeClock()
    client = make_client(clock)
    issued: list[str] = []

    async def fake_fetch_token():
        issued.append(f"token-{len(issued) + 1}")
        return issued[-1], 3600

    monkeypatch.setattr(client, "_fetch_token", fake_fetch_token)

    assert asyncio.run(client.get_access_token()) == "token-1"
    clock.now += 3600 - 2 * TOKEN_SAFETY_MARGIN - 1
    assert asyncio.run(client.get_access_token()) == "token-1"

    clock.now += 1
    assert asyncio.run(client.get_access_token()) == "token-2"
    assert len(issued) == 2


def test_fetch_token_requires_credentials():
    client = ProviderClient("http://ispring.test", None, None)

    with pytest.raises(ProviderError):
        asyncio.run(client.get_access_token())


def test_list_users_replaces_directory_and_keeps_it_on_failure(monkeypatch: pytest.MonkeyPatch):
    client = make_client()
    responses = [(200, USERS_XML)]

    async def fake_token():
        return "token"

    async def fake_request(method, path, **kwargs):
        if not responses:
            raise ProviderError("timeout")
        return responses.pop(0)

    monkeypatch.setattr(client, "get_access_token", fake_token)
    monkeypatch.setattr(client, "_request", fake_request)

    asyncio.run(client.list_users())
    assert [identity.user_id for identity in client.directory] == ["u-1", "u-3"]

    with pytest.raises(ProviderError):
        asyncio.run(client.list_users())
    assert len(client.directory) == 2


def test_find_identity_is_case_insensitive():
    client = make_client()
    client.directory = parse_users_xml(USERS_XML)

    assert client.find_identity("  IVAN@example.COM ").user_id == "u-1"
    assert client.find_identity("nobody@example.com") is None
    assert client.find_identity("") is None


def test_get_points_raises_on_http_error(monkeypatch: pytest.MonkeyPatch):
    client = make_client()

    async def fake_token():
        return "token"

    async def fake_request(method, path, **kwargs):
        return 500, "oops"

    monkeypatch.setattr(client, "get_access_token", fake_token)
    monkeypatch.setattr(client, "_request", fake_request)

    with pytest.raises(ProviderError):
        asyncio.run(client.get_points("u-1"))


def test_withdraw_points_reports_success_and_failure(monkeypatch: pytest.MonkeyPatch):
    client = make_client()
    sent: list[tuple[str, str, dict]] = []
    statuses = [200, 400]

    async def fake_token():
        return "token"

    async def fake_request(method, path, **kwargs):
        sent.append((method, path, kwargs))
        if not statuses:
            raise ProviderError("connection reset")
        return statuses.pop(0), ""

    monkeypatch.setattr(client, "get_access_token", fake_token)
    monkeypatch.setattr(client, "_request", fake_request)

    assert asyncio.run(client.withdraw_points("u-1", 80, "Заказ")) is True
    assert asyncio.run(client.withdraw_points("u-1", 80, "Заказ")) is False
    assert asyncio.run(client.withdraw_points("u-1", 80, "Заказ")) is False

    method, path, kwargs = sent[0]
    assert method == "POST"
    assert path == "/gamification/points/withdraw"
    assert kwargs["headers"]["Authorization"] == "Bearer token"
    assert "<amount>80</amount>" in kwargs["data"]
