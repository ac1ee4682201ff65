"""Outbound mail over a persistent SMTP connection."""

import asyncio
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable, Dict, Optional

import aiosmtplib

from ..exceptions import SendError, ValidationError

logger = logging.getLogger(__name__)


def build_message(
    from_address: str,
    to: str,
    subject: str,
    body: str,
    cc: Optional[str] = None,
    bcc: Optional[str] = None,
    html_body: Optional[str] = None,
):
    """Build a MIME message; multipart/alternative when html_body is given."""
    if html_body:
        message = MIMEMultipart("alternative")
        message.attach(MIMEText(body, "plain", "utf-8"))
        message.attach(MIMEText(html_body, "html", "utf-8"))
    else:
        message = MIMEText(body, "plain", "utf-8")

    message["From"] = from_address
    message["To"] = to
    message["Subject"] = subject

    if cc:
        message["Cc"] = cc
    # aiosmtplib delivers to Bcc recipients and strips the header.
    if bcc:
        message["Bcc"] = bcc

    return message


class OutboundSender:
    """
    Sends mail through one SMTP connection opened on first use.

    The connection is reused for every later send until close(). If the
    server drops it, the next send opens a new one; the failed send itself
    is not retried.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        smtp_factory: Callable[..., Any] = aiosmtplib.SMTP,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self._smtp_factory = smtp_factory
        self._smtp = None
        self._lock: Optional[asyncio.Lock] = None

    @property
    def connected(self) -> bool:
        return self._smtp is not None

    async def _connection(self):
        if self._smtp is not None:
            return self._smtp

        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self._smtp is None:
                logger.debug(f"Opening SMTP connection to {self.host}:{self.port}")
                smtp = self._smtp_factory(
                    hostname=self.host,
                    port=self.port,
                    use_tls=self.use_tls,
                )
                try:
                    await smtp.connect()
                    if self.username:
                        await smtp.login(self.username, self.password or "")
                except (aiosmtplib.SMTPException, OSError) as e:
                    # Login can fail after the transport is open.
                    smtp.close()
                    raise SendError(
                        f"Could not connect to {self.host}:{self.port}: {e}"
                    ) from e
                self._smtp = smtp
        return self._smtp

    async def send(
        self,
        from_address: str,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        html_body: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one message.

        Returns:
            Dict containing:
                - from / to: envelope addresses
                - response: final server response text
                - refused: recipients the server rejected, with reasons

        Raises:
            ValidationError: If there is no sender or recipient
            SendError: If the transport fails
        """
        if not from_address:
            raise ValidationError("A from address is required to send mail")
        if not to:
            raise ValidationError("At least one recipient is required")

        message = build_message(from_address, to, subject, body, cc=cc, bcc=bcc, html_body=html_body)
        smtp = await self._connection()

        try:
            refused, response = await smtp.send_message(message)
        except aiosmtplib.SMTPServerDisconnected as e:
            self._smtp = None
            raise SendError(f"SMTP server disconnected: {e}") from e
        except (aiosmtplib.SMTPException, OSError) as e:
            raise SendError(f"Failed to send message to {to}: {e}") from e

        logger.info(f"Email sent to {to}: {response}")
        return {
            "from": from_address,
            "to": to,
            "response": response,
            "refused": {
                recipient: str(reason) for recipient, reason in (refused or {}).items()
            },
        }

    async def close(self):
        """Close the connection if one is open."""
        smtp, self._smtp = self._smtp, None
        if smtp is None:
            return
        logger.debug(f"Closing SMTP connection to {self.host}:{self.port}")
        try:
            await smtp.quit()
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.debug(f"SMTP quit failed, closing transport: {e}")
            smtp.close()
