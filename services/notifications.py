"""Уведомления о заказах: сообщение администратору в Telegram и письма по SMTP."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

from aiogram import Bot

from config import Settings

logger = logging.getLogger(__name__)

ORDER_EMAIL_SUBJECT = "Новый заказ в магазине баллов"


@dataclass
class DeliveryReport:
    admin_chat: bool = False
    operator_email: bool = False
    buyer_email: bool = False


class Notifier:
    def __init__(self, bot: Bot, settings: Settings) -> None:
        self.bot = bot
        self.settings = settings

    async def notify_admin(self, text: str) -> bool:
        chat_id = self.settings.admin_chat_id
        if chat_id is None:
            logger.warning("ADMIN_ID не задан, уведомление администратору не отправлено")
            return False
        try:
            await self.bot.send_message(chat_id, text, parse_mode=None)
        except Exception:  # noqa: BLE001
            logger.exception("Не удалось отправить уведомление администратору chat_id=%s", chat_id)
            return False
        return True

    def _send_email_sync(self, to: str, subject: str, body: str) -> None:
        settings = self.settings
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = settings.smtp_user
        msg["To"] = to
        msg.set_content(body)

        timeout = settings.http_timeout
        if settings.smtp_ssl:
            with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, timeout=timeout) as smtp:
                smtp.login(settings.smtp_user, settings.smtp_password)
                smtp.send_message(msg)
        else:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=timeout) as smtp:
                smtp.starttls()
                smtp.login(settings.smtp_user, settings.smtp_password)
                smtp.send_message(msg)

    async def send_email(self, to: str | None, subject: str, body: str) -> bool:
        if not to:
            return False
        if not self.settings.email_enabled:
            logger.info("SMTP не настроен, письмо для %s пропущено", to)
            return False
        # ValueError прилетает, например, на не-ASCII пароле при AUTH PLAIN
        try:
            await asyncio.to_thread(self._send_email_sync, to, subject, body)
        except (smtplib.SMTPException, OSError, ValueError):
            logger.exception("Не удалось отправить письмо на %s", to)
            return False
        return True

    async def notify_order(self, summary: str, buyer_email: str | None = None) -> DeliveryReport:
        """Ошибки доставки только логируются: списание и остатки к этому моменту уже зафиксированы."""
        report = DeliveryReport()
        report.admin_chat = await self.notify_admin(summary)
        report.operator_email = await self.send_email(
            self.settings.operator_email, ORDER_EMAIL_SUBJECT, summary
        )
        if self.settings.email_buyer_copy:
            report.buyer_email = await self.send_email(buyer_email, ORDER_EMAIL_SUBJECT, summary)
        return report
