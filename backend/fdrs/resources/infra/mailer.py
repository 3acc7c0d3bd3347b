"""SMTP notifier for moderation decisions."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from email.message import EmailMessage
from pathlib import Path
from typing import Optional

import aiofiles
import aiosmtplib

from fdrs.obs.logging import mask_email
from fdrs.settings import Settings

logger = logging.getLogger(__name__)

LOGO_CID = "logo"


@dataclass(frozen=True, slots=True)
class MailerConfig:
    host: str
    port: int
    from_email: str
    username: Optional[str] = None
    password: Optional[str] = None
    tls: bool = False
    logo_path: Optional[Path] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MailerConfig":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_email=settings.smtp_from_email,
            username=settings.smtp_user,
            password=settings.smtp_password,
            tls=settings.smtp_tls,
            logo_path=settings.mail_logo_path,
        )


class SmtpNotifier:
    """Sends plain-text mails, with the portal logo inline when configured."""

    def __init__(self, config: MailerConfig) -> None:
        self.config = config

    async def build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.config.from_email
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)
        logo = self.config.logo_path
        if logo is not None and logo.is_file():
            async with aiofiles.open(logo, "rb") as handle:
                data = await handle.read()
            mime, _ = mimetypes.guess_type(logo.name)
            maintype, subtype = (mime or "image/png").split("/", 1)
            msg.add_related(
                data,
                maintype=maintype,
                subtype=subtype,
                cid=f"<{LOGO_CID}>",
                filename=logo.name,
                disposition="inline",
            )
        return msg

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        msg = await self.build_message(recipient, subject, body)
        # STARTTLS on 587, implicit TLS on 465.
        start_tls = self.config.tls and self.config.port == 587
        use_tls = self.config.tls and self.config.port == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.config.host,
                port=self.config.port,
                username=self.config.username,
                password=self.config.password,
                start_tls=start_tls,
                use_tls=use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", mask_email(recipient), str(exc))
            return False
        logger.info("Email sent to %s", mask_email(recipient))
        return True
