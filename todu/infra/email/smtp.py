from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from todu.config import EmailSettings
from todu.domain.common.ports import Mailer

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(RuntimeError):
    pass


class SmtpMailer(Mailer):
    def __init__(self, settings: EmailSettings, timeout: int = 15) -> None:
        self._s = settings
        self._timeout = timeout

    def _build(self, to: str, subject: str, text: str, html: Optional[str]) -> EmailMessage:
        m = EmailMessage()
        m["Subject"] = subject
        m["From"] = formataddr((self._s.from_name, self._s.from_address))
        m["To"] = to
        m.set_content(text)
        if html:
            m.add_alternative(html, subtype="html")
        return m

    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        if not self._s.host or not self._s.from_address:
            raise EmailNotConfiguredError("SMTP host/from address missing")
        message = self._build(to, subject, text, html)

        def _send_sync() -> None:
            with smtplib.SMTP(host=self._s.host, port=self._s.port, timeout=self._timeout) as s:
                s.ehlo()
                if s.has_extn("starttls"):
                    s.starttls()
                    s.ehlo()
                if self._s.username and self._s.password:
                    s.login(self._s.username, self._s.password)
                s.send_message(message)

        await asyncio.to_thread(_send_sync)
        logger.info("Email sent: to=%s, subject=%s", to, subject)
