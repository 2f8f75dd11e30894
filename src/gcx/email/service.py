"""
OTP mail delivery.

Only the local OTP backend sends mail; with the remote OTP provider the
provider does its own delivery. Transport is SMTP (default) or the Resend
API, chosen by GCX_EMAIL_PROVIDER. Sends per recipient are capped per hour
when Redis is configured.
"""

from __future__ import annotations

import hashlib
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from typing import TYPE_CHECKING

import aiosmtplib
import httpx
import structlog

from gcx.email.templates import otp_code

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from gcx.config import Settings

logger = structlog.get_logger()

RESEND_URL = "https://api.resend.com/emails"


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html_body: str
    text_body: str


class BaseEmailProvider(ABC):
    """One way of getting a rendered message to a mailbox."""

    name: str = "abstract"

    def __init__(self, from_address: str, from_name: str) -> None:
        self.sender = f"{from_name} <{from_address}>"

    @abstractmethod
    async def send(self, message: OutgoingEmail) -> bool:
        """Deliver the message. Returns False when the transport refused it."""


class SMTPProvider(BaseEmailProvider):
    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        from_name: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
    ) -> None:
        super().__init__(from_address, from_name)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls

    def build_message(self, message: OutgoingEmail) -> EmailMessage:
        mime = EmailMessage()
        mime["From"] = self.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text_body)
        mime.add_alternative(message.html_body, subtype="html")
        return mime

    async def send(self, message: OutgoingEmail) -> bool:
        try:
            await aiosmtplib.send(
                self.build_message(message),
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=ssl.create_default_context() if self.use_tls else None,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=message.to, provider=self.name)
            return False
        logger.info("email_sent", to=message.to, subject=message.subject, provider=self.name)
        return True


class ResendProvider(BaseEmailProvider):
    name = "resend"

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(from_address, from_name)
        self.api_key = api_key
        self._transport = transport

    async def send(self, message: OutgoingEmail) -> bool:
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html_body,
            "text": message.text_body,
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
                response = await client.post(
                    RESEND_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("email_send_failed", to=message.to, provider=self.name)
            return False
        logger.info("email_sent", to=message.to, subject=message.subject, provider=self.name)
        return True


def create_provider(settings: Settings) -> BaseEmailProvider:
    """Build the provider named by GCX_EMAIL_PROVIDER."""
    provider_name = settings.email_provider.lower()
    if provider_name == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    if provider_name == "resend":
        return ResendProvider(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    msg = f"Unsupported email provider: {provider_name}"
    raise ValueError(msg)


class EmailService:
    """Renders passcode mail and hands it to the provider, within the hourly cap."""

    RATE_LIMIT_WINDOW = 3600

    def __init__(
        self,
        provider: BaseEmailProvider,
        redis: Redis | None = None,
        rate_limit_per_hour: int = 5,
        app_name: str = "GCX Seller Panel",
    ) -> None:
        self.provider = provider
        self._redis = redis
        self.rate_limit_max = rate_limit_per_hour
        self.app_name = app_name

    async def _within_rate_limit(self, email: str) -> bool:
        if self._redis is None:
            return True
        # Hashed so raw addresses never land in Redis.
        key = f"email_rate:{hashlib.sha256(email.lower().encode()).hexdigest()}"
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, self.RATE_LIMIT_WINDOW)
        return count <= self.rate_limit_max

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> bool:
        """Send unless the recipient is over the hourly cap. False if capped or undelivered."""
        if not await self._within_rate_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        return await self.provider.send(OutgoingEmail(to, subject, html_body, text_body))

    async def send_otp(self, to: str, code: str, ttl_minutes: int) -> bool:
        subject, html_body, text_body = otp_code(code, ttl_minutes, self.app_name)
        return await self.send_email(to, subject, html_body, text_body)


def build_email_service(settings: Settings, redis: Redis | None = None) -> EmailService:
    """Email service configured from the app's settings."""
    return EmailService(
        create_provider(settings),
        redis=redis,
        rate_limit_per_hour=settings.email_rate_limit_per_hour,
        app_name=settings.email_from_name,
    )
