"""Mail delivery of rendered reports.

The pipeline hands a ``MailMessage`` to a ``Mailer``. ``SmtpMailer`` submits
it over SMTP; the blocking ``smtplib`` client runs in a worker thread so the
pipeline can await delivery.
"""

from __future__ import annotations

import asyncio
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from email.message import EmailMessage
from pathlib import Path

from mailreport.core.exceptions import DeliveryFailure
from mailreport.logging import get_logger

logger = get_logger(__name__)

PLAYWRIGHT_REPORT_FILENAME = "Playwright_Detailed_Report.html"


@dataclass
class MailAttachment:
    """A file attached to a report mail."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class MailMessage:
    """Everything the transport needs to submit one report mail."""

    sender: str
    recipients: list[str]
    subject: str
    html_body: str
    attachments: list[MailAttachment] = field(default_factory=list)

    def to_email(self) -> EmailMessage:
        """Build a MIME message with a plain-text fallback and the HTML body."""
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = ", ".join(self.recipients)
        message["Subject"] = self.subject
        message.set_content("This report is best viewed in an HTML-capable mail client.")
        message.add_alternative(self.html_body, subtype="html")

        for attachment in self.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return message


def playwright_report_attachment(path: Path) -> MailAttachment | None:
    """Attach the Playwright HTML report if the runner produced one."""
    if not path.is_file():
        logger.debug("attachment_missing", path=str(path))
        return None
    return MailAttachment(
        filename=PLAYWRIGHT_REPORT_FILENAME,
        content=path.read_bytes(),
        content_type="text/html",
    )


class Mailer(ABC):
    """Mail-submission collaborator."""

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """Submit a message.

        Raises:
            DeliveryFailure: If the message could not be handed off.
        """


class SmtpMailer(Mailer):
    """Submit messages to an SMTP relay."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 25,
        use_tls: bool = False,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.use_tls = use_tls
        self.username = username
        self.password = password
        self.timeout = timeout

    async def send(self, message: MailMessage) -> None:
        if not message.recipients:
            raise DeliveryFailure("No recipients configured")

        try:
            await asyncio.to_thread(self._submit, message.to_email())
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryFailure(f"SMTP delivery to {self.host}:{self.port} failed: {e}") from e

        logger.info(
            "mail_sent",
            subject=message.subject,
            recipients=len(message.recipients),
            attachments=len(message.attachments),
        )

    def _submit(self, email: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            if self.use_tls:
                client.starttls()
            if self.username and self.password:
                client.login(self.username, self.password)
            client.send_message(email)
