"""SMTP transport built on aiosmtplib."""

import logging
import ssl
from email.message import EmailMessage
from email.utils import make_msgid

import aiosmtplib

from mcp_protonmail.common.config import DEFAULT_TLS_VERSION, Settings
from mcp_protonmail.common.exceptions import ConnectivityError

logger = logging.getLogger(__name__)

_TLS_VERSION_MAP = {
    "TLSv1": ssl.TLSVersion.TLSv1,
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


def build_tls_context(min_version: str, reject_unauthorized: bool = True) -> ssl.SSLContext:
    """Create the client TLS context; unknown versions fall back to TLSv1.2."""
    context = ssl.create_default_context()
    context.minimum_version = _TLS_VERSION_MAP.get(
        min_version, _TLS_VERSION_MAP[DEFAULT_TLS_VERSION]
    )
    if not reject_unauthorized:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def build_message(
    sender: str,
    to: str,
    subject: str,
    body: str,
    is_html: bool = False,
    cc: str | None = None,
    bcc: str | None = None,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    if cc:
        message["Cc"] = cc
    if bcc:
        message["Bcc"] = bcc
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=sender.rpartition("@")[2] or None)
    message.set_content(body, subtype="html" if is_html else "plain")
    return message


class SmtpTransport:
    """Authenticated SMTP submission client.

    Each call opens its own connection so concurrent sends never share a
    session.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        secure: bool = False,
        require_tls: bool = True,
        tls_min_version: str = DEFAULT_TLS_VERSION,
        tls_reject_unauthorized: bool = True,
        connection_timeout_ms: int | None = 10000,
        socket_timeout_ms: int | None = 10000,
    ):
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.secure = secure
        self.require_tls = require_tls
        self.tls_context = build_tls_context(tls_min_version, tls_reject_unauthorized)
        self.connection_timeout = (
            connection_timeout_ms / 1000 if connection_timeout_ms else None
        )
        self.socket_timeout = socket_timeout_ms / 1000 if socket_timeout_ms else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpTransport":
        return cls(
            host=settings.host,
            port=settings.port,
            username=settings.username,
            password=settings.password,
            secure=settings.secure,
            require_tls=settings.require_tls,
            tls_min_version=settings.tls_min_version,
            tls_reject_unauthorized=settings.tls_reject_unauthorized,
            connection_timeout_ms=settings.connection_timeout_ms,
            socket_timeout_ms=settings.socket_timeout_ms,
        )

    @property
    def sender(self) -> str:
        return self.username

    @property
    def tls_mode(self) -> str:
        if self.secure:
            return "implicit"
        return "starttls required" if self.require_tls else "starttls optional"

    def _client(self) -> aiosmtplib.SMTP:
        if self.secure:
            start_tls = False
        else:
            # None lets aiosmtplib upgrade opportunistically when offered.
            start_tls = True if self.require_tls else None
        return aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self._password,
            use_tls=self.secure,
            start_tls=start_tls,
            tls_context=self.tls_context,
            timeout=self.socket_timeout,
        )

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        is_html: bool = False,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> str:
        """Submit one message and return its Message-ID."""
        logger.debug(f"Sending email to: {to}")
        message = build_message(self.sender, to, subject, body, is_html, cc, bcc)

        client = self._client()
        await client.connect(timeout=self.connection_timeout)
        try:
            await client.send_message(message)
        finally:
            if client.is_connected:
                await client.quit()

        message_id = message["Message-ID"]
        logger.debug(f"Email sent successfully: {message_id}")
        return message_id

    async def verify_connection(self) -> bool:
        """Connect, authenticate and disconnect, raising ConnectivityError on failure."""
        logger.debug("Verifying SMTP connection...")
        client = self._client()
        try:
            await client.connect(timeout=self.connection_timeout)
            await client.quit()
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP connection verification failed: {e}")
            raise ConnectivityError(str(e)) from e
        logger.debug("SMTP connection verified successfully")
        return True
