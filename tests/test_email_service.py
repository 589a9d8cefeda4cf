import base64
import email
import json

import httpx
import pytest

import credify.email_service as email_service
from credify.email_service import (
    Attachment,
    BrevoTransport,
    EmailDeliveryError,
    Notification,
    Notifier,
    ResendTransport,
    SMTPTransport,
    build_transport,
    career_notification,
    contact_notification,
)
from credify.schemas import CareerSubmission, ContactSubmission, ResumeFile

from conftest import FakeTransport, make_config


def sample_notification(with_attachment=True):
    attachments = [Attachment("cv.pdf", b"%PDF-1.4\n" * 40, "application/pdf")] if with_attachment else []
    return Notification(
        subject="New Career Application [Analyst] - Asha",
        html="<h2>Career Application</h2>",
        sender_name="Credify Careers",
        reply_to="asha@example.com",
        attachments=attachments,
    )


def test_contact_notification_escapes_user_text():
    sub = ContactSubmission(name="<b>x</b>", email="a@b.com", loanType="home & car", message="it's <fine>")
    n = contact_notification(sub, "Credify")
    assert "&lt;b&gt;x&lt;/b&gt;" in n.html
    assert "home &amp; car" in n.html
    assert "it&#x27;s &lt;fine&gt;" in n.html


def test_career_notification_attaches_resume():
    sub = CareerSubmission(
        fullName="Asha", email="asha@example.com", phone="1234567", role="Analyst", experience="2y",
        resume=ResumeFile(filename="cv.pdf", content_type="application/pdf", content=b"%PDF"),
    )
    n = career_notification(sub, "Credify")
    assert [a.filename for a in n.attachments] == ["cv.pdf"]
    assert "cv.pdf (attached)" in n.html


def test_attachment_base64_has_no_line_breaks():
    data = sample_notification().attachments[0].as_base64()
    assert "\n" not in data and "\r" not in data
    assert base64.b64decode(data) == b"%PDF-1.4\n" * 40


@pytest.mark.asyncio
async def test_brevo_transport_posts_expected_payload():
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201, json={"messageId": "<abc@smtp-relay.brevo.com>"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = BrevoTransport(
        api_key="xkeysib-test", sender="notifications@credify.test", recipient="team@credify.test", client=client
    )
    result = await transport.send(sample_notification())
    await client.aclose()

    assert result["id"] == "<abc@smtp-relay.brevo.com>"
    request = captured[0]
    assert str(request.url) == "https://api.brevo.com/v3/smtp/email"
    assert request.headers["api-key"] == "xkeysib-test"

    payload = json.loads(request.content)
    assert payload["sender"] == {"name": "Credify Careers", "email": "notifications@credify.test"}
    assert payload["to"] == [{"email": "team@credify.test"}]
    assert payload["replyTo"] == {"email": "asha@example.com"}
    assert payload["htmlContent"] == "<h2>Career Application</h2>"
    attachment = payload["attachment"][0]
    assert attachment["name"] == "cv.pdf"
    assert base64.b64decode(attachment["content"]) == b"%PDF-1.4\n" * 40


@pytest.mark.asyncio
async def test_brevo_error_status_raises_delivery_error():
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"code": "unauthorized"}))
    )
    transport = BrevoTransport(api_key="bad", sender="s@credify.test", recipient="r@credify.test", client=client)
    with pytest.raises(EmailDeliveryError):
        await transport.send(sample_notification())
    await client.aclose()


@pytest.mark.asyncio
async def test_unconfigured_transport_raises_delivery_error():
    with pytest.raises(EmailDeliveryError):
        await BrevoTransport(api_key=None, sender=None, recipient=None).send(sample_notification())


class FakeSMTP:
    instances = []

    def __init__(self, host, port, context=None, timeout=None):
        self.host = host
        self.port = port
        self.sent = None
        self.closed = False
        FakeSMTP.instances.append(self)

    def login(self, username, password):
        self.credentials = (username, password)

    def sendmail(self, from_addr, to_addrs, msg):
        self.sent = (from_addr, to_addrs, msg)

    def quit(self):
        self.closed = True


@pytest.mark.asyncio
async def test_smtp_transport_sends_mime_message(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(email_service.smtplib, "SMTP_SSL", FakeSMTP)
    transport = SMTPTransport(
        host="smtp.credify.test", port=465, username="notifications@credify.test", password="secret",
        sender="notifications@credify.test", recipient="team@credify.test", use_ssl=True,
    )
    await transport.send(sample_notification())

    server = FakeSMTP.instances[0]
    assert server.credentials == ("notifications@credify.test", "secret")
    assert server.closed is True
    from_addr, to_addrs, raw = server.sent
    assert to_addrs == ["team@credify.test"]

    msg = email.message_from_string(raw)
    assert msg["Subject"] == "New Career Application [Analyst] - Asha"
    assert msg["Reply-To"] == "asha@example.com"
    assert "Credify Careers" in msg["From"]
    parts = [p for p in msg.walk() if p.get_filename()]
    assert parts[0].get_filename() == "cv.pdf"
    assert parts[0].get_content_type() == "application/pdf"
    assert parts[0].get_payload(decode=True) == b"%PDF-1.4\n" * 40


@pytest.mark.asyncio
async def test_smtp_connection_error_raises_delivery_error(monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("relay down")

    monkeypatch.setattr(email_service.smtplib, "SMTP_SSL", refuse)
    transport = SMTPTransport(
        host="smtp.credify.test", port=465, username="u", password="p",
        sender="s@credify.test", recipient="r@credify.test",
    )
    with pytest.raises(EmailDeliveryError):
        await transport.send(sample_notification())


@pytest.mark.asyncio
async def test_resend_transport_builds_params(monkeypatch):
    captured = {}

    def fake_send(params):
        captured.update(params)
        return {"id": "re_123"}

    monkeypatch.setattr(email_service.resend.Emails, "send", fake_send)
    transport = ResendTransport(api_key="re_key", sender="s@credify.test", recipient="r@credify.test")
    result = await transport.send(sample_notification())

    assert result["id"] == "re_123"
    assert captured["to"] == ["r@credify.test"]
    assert captured["from"] == "Credify Careers <s@credify.test>"
    assert captured["reply_to"] == "asha@example.com"
    assert base64.b64decode(captured["attachments"][0]["content"]) == b"%PDF-1.4\n" * 40


def test_build_transport_selects_by_name():
    assert isinstance(build_transport(make_config(email_transport="smtp", email_pass="x")), SMTPTransport)
    assert isinstance(build_transport(make_config(email_transport="brevo")), BrevoTransport)
    assert isinstance(build_transport(make_config(email_transport="resend")), ResendTransport)
    with pytest.raises(ValueError):
        build_transport(make_config(email_transport="carrier-pigeon"))


@pytest.mark.asyncio
async def test_notifier_wraps_unexpected_errors():
    class Exploding:
        name = "exploding"

        async def send(self, notification):
            raise RuntimeError("socket closed")

    with pytest.raises(EmailDeliveryError):
        await Notifier(Exploding()).deliver(sample_notification(with_attachment=False))


@pytest.mark.asyncio
async def test_detached_delivery_only_logs_failures(caplog):
    transport = FakeTransport(fail=True)
    await Notifier(transport, background=True).deliver_detached(sample_notification())
    assert transport.attempts == 1
    assert "Background email dropped" in caplog.text
