"""
Notification Email Service
Formats form submissions into HTML emails and delivers them through the
configured transport: an authenticated SMTP relay, the Brevo transactional
email API, or Resend. All transports deliver the same subject, body, sender,
reply-to and attachments.
"""

import base64
import logging
import smtplib
import ssl
import time
from dataclasses import dataclass, field
from email import encoders
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from typing import Optional, Protocol

import httpx
import resend
from fastapi import BackgroundTasks
from starlette.concurrency import run_in_threadpool

from .config import AppConfig
from .email_templates import (
    career_notification_template,
    career_subject,
    contact_notification_template,
    contact_subject,
    loan_application_subject,
    loan_application_template,
)
from .schemas import CareerSubmission, ContactSubmission, LoanApplication
from .shared.validators import is_email
from .utils.sanitization import sanitize_display_name

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """The transport or provider failed to accept a notification"""


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def as_base64(self) -> str:
        # b64encode never inserts line breaks
        return base64.b64encode(self.content).decode("ascii")


@dataclass
class Notification:
    subject: str
    html: str
    sender_name: str
    reply_to: Optional[str] = None
    attachments: list[Attachment] = field(default_factory=list)

    def __post_init__(self):
        self.subject = sanitize_display_name(self.subject, max_length=200)
        self.sender_name = sanitize_display_name(self.sender_name)


class EmailTransport(Protocol):
    name: str

    async def send(self, notification: Notification) -> dict: ...


# ============================================
# Transports
# ============================================


class SMTPTransport:
    """Send via an authenticated SMTP relay (implicit TLS or STARTTLS)"""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        sender: Optional[str],
        recipient: Optional[str],
        use_ssl: bool = True,
        timeout: int = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.recipient = recipient
        self.use_ssl = use_ssl
        self.timeout = timeout

    def build_message(self, notification: Notification) -> MIMEMultipart:
        msg = MIMEMultipart("mixed")
        msg["Subject"] = notification.subject
        msg["From"] = formataddr((notification.sender_name, self.sender))
        msg["To"] = self.recipient
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        if notification.reply_to:
            msg["Reply-To"] = notification.reply_to

        msg.attach(MIMEText(notification.html, "html", "utf-8"))

        for attachment in notification.attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            part = MIMEBase(maintype or "application", subtype or "octet-stream")
            part.set_payload(attachment.content)
            encoders.encode_base64(part)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)

        return msg

    def _send_sync(self, notification: Notification) -> dict:
        if not (self.username and self.password and self.sender and self.recipient):
            raise EmailDeliveryError("SMTP transport not configured")

        msg = self.build_message(notification)
        context = ssl.create_default_context()
        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
                server.starttls(context=context)
            try:
                server.login(self.username, self.password)
                server.sendmail(self.sender, [self.recipient], msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP failed: {e}") from e

        logger.info(f"✅ SMTP email sent via {self.host}")
        return {"id": msg["Message-ID"], "success": True}

    async def send(self, notification: Notification) -> dict:
        return await run_in_threadpool(self._send_sync, notification)


class BrevoTransport:
    """Send via the Brevo transactional email HTTP API"""

    name = "brevo"

    def __init__(
        self,
        api_key: Optional[str],
        sender: Optional[str],
        recipient: Optional[str],
        api_url: str = "https://api.brevo.com/v3/smtp/email",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient
        self.api_url = api_url
        self.client = client
        self.timeout = timeout

    def build_payload(self, notification: Notification) -> dict:
        payload = {
            "sender": {"name": notification.sender_name, "email": self.sender},
            "to": [{"email": self.recipient}],
            "subject": notification.subject,
            "htmlContent": notification.html,
        }
        if notification.reply_to:
            payload["replyTo"] = {"email": notification.reply_to}
        if notification.attachments:
            payload["attachment"] = [
                {"content": a.as_base64(), "name": a.filename, "contentType": a.content_type}
                for a in notification.attachments
            ]
        return payload

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            self.api_url,
            json=payload,
            headers={
                "accept": "application/json",
                "api-key": self.api_key,
                "content-type": "application/json",
            },
        )

    async def send(self, notification: Notification) -> dict:
        if not (self.api_key and self.sender and self.recipient):
            raise EmailDeliveryError("Brevo transport not configured")

        payload = self.build_payload(notification)
        try:
            if self.client is not None:
                response = await self._post(self.client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EmailDeliveryError(
                f"Brevo rejected email: HTTP {e.response.status_code} {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Brevo request failed: {e}") from e

        result = response.json() if response.content else {}
        logger.info(f"✅ Email accepted by Brevo: {result.get('messageId', 'unknown')}")
        return {"id": result.get("messageId"), "success": True}


class ResendTransport:
    """Send via the Resend API"""

    name = "resend"

    def __init__(self, api_key: Optional[str], sender: Optional[str], recipient: Optional[str]):
        self.api_key = api_key
        self.sender = sender
        self.recipient = recipient

    def build_params(self, notification: Notification) -> dict:
        params = {
            "from": formataddr((notification.sender_name, self.sender)),
            "to": [self.recipient],
            "subject": notification.subject,
            "html": notification.html,
        }
        if notification.reply_to:
            params["reply_to"] = notification.reply_to
        if notification.attachments:
            params["attachments"] = [
                {"filename": a.filename, "content": a.as_base64(), "content_type": a.content_type}
                for a in notification.attachments
            ]
        return params

    def _send_sync(self, params: dict) -> dict:
        resend.api_key = self.api_key
        return resend.Emails.send(params)

    async def send(self, notification: Notification) -> dict:
        if not (self.api_key and self.sender and self.recipient):
            raise EmailDeliveryError("Resend transport not configured")

        try:
            response = await run_in_threadpool(self._send_sync, self.build_params(notification))
        except Exception as e:
            # resend raises its own error hierarchy plus requests errors
            raise EmailDeliveryError(f"Resend failed: {e}") from e

        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return {"id": response.get("id") if isinstance(response, dict) else None, "success": True}


def build_transport(config: AppConfig) -> EmailTransport:
    """Create the transport selected by EMAIL_TRANSPORT"""
    kind = config.email_transport
    if kind == "smtp":
        transport = SMTPTransport(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_user or config.email_user,
            password=config.email_pass,
            sender=config.email_user,
            recipient=config.recipient,
            use_ssl=config.smtp_secure,
        )
        configured = bool(config.email_user and config.email_pass)
    elif kind == "brevo":
        transport = BrevoTransport(
            api_key=config.brevo_api_key,
            sender=config.email_user,
            recipient=config.recipient,
            api_url=config.brevo_api_url,
        )
        configured = bool(config.brevo_api_key and config.email_user)
    elif kind == "resend":
        transport = ResendTransport(
            api_key=config.resend_api_key,
            sender=config.email_user,
            recipient=config.recipient,
        )
        configured = bool(config.resend_api_key and config.email_user)
    else:
        raise ValueError(f"Unknown EMAIL_TRANSPORT '{kind}' (expected smtp, brevo or resend)")

    if configured:
        logger.info(f"📧 Email transport: {kind} → {config.recipient}")
    else:
        logger.warning(f"⚠️ Email transport '{kind}' is missing credentials - sends will fail")
    return transport


# ============================================
# Notifier
# ============================================


class Notifier:
    """
    Delivers notifications through a transport, either before the response
    (sync) or after it via FastAPI background tasks (fire-and-forget).
    Background failures are only logged.
    """

    def __init__(self, transport: EmailTransport, background: bool = False):
        self.transport = transport
        self.background = background

    async def deliver(self, notification: Notification) -> dict:
        """Send now. Raises EmailDeliveryError on any failure; nothing is retried."""
        started = time.time()
        try:
            result = await self.transport.send(notification)
        except EmailDeliveryError as e:
            logger.error(f"❌ Email delivery failed ({notification.subject}): {e}")
            raise
        except Exception as e:
            logger.error(f"❌ Email delivery failed ({notification.subject}): {e}")
            raise EmailDeliveryError(str(e)) from e

        elapsed = time.time() - started
        logger.info(f"📧 Delivered '{notification.subject}' in {elapsed:.2f}s")
        return result

    async def deliver_detached(self, notification: Notification) -> None:
        """Background entry point: the response is already sent, so failures stop here"""
        try:
            await self.deliver(notification)
        except EmailDeliveryError:
            logger.error(f"❌ Background email dropped: {notification.subject}")

    async def dispatch(self, notification: Notification, background_tasks: BackgroundTasks) -> None:
        if self.background:
            background_tasks.add_task(self.deliver_detached, notification)
            logger.info(f"📨 Queued background email: {notification.subject}")
        else:
            await self.deliver(notification)


# ============================================
# Notification builders
# ============================================


def contact_notification(submission: ContactSubmission, brand_name: str = "Credify") -> Notification:
    return Notification(
        subject=contact_subject(brand_name),
        html=contact_notification_template(submission),
        sender_name=f"{brand_name} Contact",
        reply_to=submission.email,
    )


def career_notification(submission: CareerSubmission, brand_name: str = "Credify") -> Notification:
    attachments = []
    if submission.resume:
        attachments.append(
            Attachment(
                filename=submission.resume.filename,
                content=submission.resume.content,
                content_type=submission.resume.content_type,
            )
        )
    return Notification(
        subject=career_subject(submission),
        html=career_notification_template(submission),
        sender_name=f"{brand_name} Careers",
        reply_to=submission.email,
        attachments=attachments,
    )


def loan_application_notification(
    application: LoanApplication, brand_name: str = "Credify"
) -> Notification:
    return Notification(
        subject=loan_application_subject(application),
        html=loan_application_template(application),
        sender_name=f"{application.fullName} via {brand_name}",
        reply_to=application.email if is_email(application.email) else None,
    )
