from dataclasses import dataclass
import os

from dotenv import load_dotenv

# Загружаем .env один раз при импорте модуля
load_dotenv()

MODE_LOCAL = "local"
MODE_WEBHOOK = "webhook"

DEFAULT_ISPRING_BASE_URL = "https://api-learn.ispringlearn.com"


@dataclass
class Settings:
    bot_token: str
    mode: str = MODE_LOCAL
    admin_chat_id: int | None = None
    database_url: str | None = None

    # 🔹 iSpring Learn: токен, справочник пользователей, баллы
    ispring_base_url: str = DEFAULT_ISPRING_BASE_URL
    ispring_client_id: str | None = None
    ispring_client_secret: str | None = None

    # 🔹 Почта для уведомлений о заказах
    smtp_host: str | None = None
    smtp_port: int = 465
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_ssl: bool = True
    operator_email: str | None = None
    email_buyer_copy: bool = False

    auth_ttl_hours: int = 720
    http_timeout: float = 10.0
    session_idle_ttl: int = 3600

    webhook_secret: str | None = None
    log_file: str | None = None

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """
    Возвращает объект настроек.
    Обязателен только BOT_TOKEN, без него бот не стартует.
    """
    token = os.getenv("BOT_TOKEN")
    if not token:
        raise ValueError("Не найден BOT_TOKEN в .env")

    mode = (os.getenv("MODE") or MODE_LOCAL).strip().lower()
    if mode not in {MODE_LOCAL, MODE_WEBHOOK}:
        raise ValueError(f"Неизвестный MODE={mode!r}, ожидается local или webhook")

    base_url = (os.getenv("ISPRING_BASE_URL") or DEFAULT_ISPRING_BASE_URL).rstrip("/")

    return Settings(
        bot_token=token,
        mode=mode,
        admin_chat_id=_env_int("ADMIN_ID", None),
        database_url=os.getenv("DATABASE_URL") or None,
        ispring_base_url=base_url,
        ispring_client_id=os.getenv("ISPRING_CLIENT_ID") or None,
        ispring_client_secret=os.getenv("ISPRING_CLIENT_SECRET") or None,
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=_env_int("SMTP_PORT", 465) or 465,
        smtp_user=os.getenv("SMTP_USER") or None,
        smtp_password=os.getenv("SMTP_PASSWORD") or None,
        smtp_ssl=_env_flag("SMTP_SSL", True),
        operator_email=os.getenv("OPERATOR_EMAIL") or None,
        email_buyer_copy=_env_flag("EMAIL_BUYER_COPY", False),
        auth_ttl_hours=_env_int("AUTH_TTL_HOURS", 720) or 720,
        http_timeout=_env_float("HTTP_TIMEOUT", 10.0),
        session_idle_ttl=_env_int("SESSION_IDLE_TTL", 3600) or 3600,
        webhook_secret=os.getenv("WEBHOOK_SECRET") or None,
        log_file=os.getenv("LOG_FILE") or None,
    )
