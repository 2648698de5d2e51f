from __future__ import annotations

import smtplib
import socket
from email.message import EmailMessage
from typing import Optional
import logging

from wisdom_api.core.config import settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        sender_name: Optional[str] = None,
    ) -> None:
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASS
        self.sender = sender or settings.SMTP_FROM
        self.sender_name = sender_name or settings.SMTP_FROM_NAME

        if self.host:
            logger.info("[MAILER] SMTP_HOST configured: %s:%s", self.host, self.port)
        else:
            logger.info("[MAILER] SMTP_HOST not configured; emails will be logged instead of sent")

    def build_message(self, to: str, subject: str, text: str, html: Optional[str] = None) -> EmailMessage:
        msg = EmailMessage()
        if self.sender_name and "<" not in self.sender:
            msg["From"] = f"{self.sender_name} <{self.sender}>"
        else:
            msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> bool:
        """Send an email. Returns True if accepted by the remote SMTP server.

        Never raises for delivery problems; callers treat email as best-effort.
        """
        if not self.host:
            # Dev fallback: log so local runs still see links and codes
            logger.info("[DEV-MAIL] To: %s | Subject: %s\n%s", to, subject, text)
            return True

        msg = self.build_message(to, subject, text, html)

        if not (self.user and self.password):
            logger.warning(
                "SMTP credentials not fully configured (user=%s, pass_present=%s); attempting unauthenticated send.",
                bool(self.user), bool(self.password),
            )

        try:
            with smtplib.SMTP(self.host, self.port, timeout=20) as server:
                server.ehlo()
                try:
                    server.starttls()
                    server.ehlo()
                except smtplib.SMTPException as tls_err:
                    logger.warning("SMTP STARTTLS failed (%s); continuing without TLS", tls_err)

                if self.user and self.password:
                    server.login(self.user, self.password)

                server.send_message(msg)
                logger.info("SMTP mail accepted: subject=%r host=%s:%s", subject, self.host, self.port)
            return True
        except smtplib.SMTPAuthenticationError as auth_err:
            logger.error(
                "SMTP auth failed: code=%s msg=%s",
                getattr(auth_err, "smtp_code", "?"), getattr(auth_err, "smtp_error", auth_err),
            )
            return False
        except smtplib.SMTPRecipientsRefused as refused:
            detail = {}
            for rcpt, (code, errmsg) in refused.recipients.items():
                detail[rcpt] = {"code": code, "error": (errmsg.decode() if isinstance(errmsg, bytes) else str(errmsg))}
            logger.error("SMTPRecipientsRefused: %s", detail)
            return False
        except (smtplib.SMTPException, OSError, socket.timeout) as e:
            logger.exception("General SMTP failure sending mail: %s", e)
            return False


mailer = Mailer()
