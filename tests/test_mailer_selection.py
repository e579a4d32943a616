from __future__ import annotations

import json

import httpx
import pytest

from logmail import mailer as mailer_module
from logmail.mailer import BrevoMailer, MailConfig, MailError, SendGridMailer, SESMailer, build_mailer
from logmail.models import ManyRecipients, SingleRecipient


def _build(**overrides):
    kwargs = dict(
        brevo_api_key=None,
        sendgrid_api_key=None,
        from_email="from@example.com",
        from_name="From",
    )
    kwargs.update(overrides)
    return build_mailer(**kwargs)


def test_selects_brevo_when_brevo_key_is_set():
    assert _build(brevo_api_key="brevo-key").provider == "brevo"


def test_selects_sendgrid_when_only_sendgrid_key_is_set():
    assert _build(sendgrid_api_key="sendgrid-key").provider == "sendgrid"


def test_selects_brevo_when_both_keys_are_set():
    assert _build(brevo_api_key="brevo-key", sendgrid_api_key="sendgrid-key").provider == "brevo"


def test_selects_ses_when_only_region_is_set():
    assert _build(aws_region="eu-west-1").provider == "ses"


def test_raises_when_no_provider_configured():
    with pytest.raises(MailError):
        _build()


def _patch_transport(monkeypatch, handler):
    original = httpx.Client

    def client_factory(**kwargs):
        return original(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(mailer_module.httpx, "Client", client_factory)


def test_brevo_sends_all_recipients_in_one_request(monkeypatch):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"messageId": "1"})

    _patch_transport(monkeypatch, handler)
    mailer = BrevoMailer("key", MailConfig(from_email="from@example.com", from_name="From"))
    message = (
        mailer.compose()
        .with_to(ManyRecipients((("a@x.com", "Alice"), ("b@x.com", None))))
        .with_subject("Application Log")
        .with_text_body("INFO start")
    )
    mailer.send(message)

    assert len(requests) == 1
    payload = json.loads(requests[0].content)
    assert payload["to"] == [{"email": "a@x.com", "name": "Alice"}, {"email": "b@x.com"}]
    assert payload["subject"] == "Application Log"
    assert payload["textContent"] == "INFO start"
    assert requests[0].headers["api-key"] == "key"


def test_brevo_error_status_raises_mail_error_without_retry(monkeypatch):
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    _patch_transport(monkeypatch, handler)
    mailer = BrevoMailer("key", MailConfig(from_email="from@example.com", from_name="From"))
    message = mailer.compose().with_to(SingleRecipient("a@x.com")).with_text_body("x")

    with pytest.raises(MailError):
        mailer.send(message)
    assert len(calls) == 1


def test_send_without_recipients_raises():
    mailer = BrevoMailer("key", MailConfig(from_email="from@example.com", from_name="From"))
    with pytest.raises(MailError):
        mailer.send(mailer.compose())


class _Response:
    def __init__(self, status_code: int):
        self.status_code = status_code


class _SendGridClient:
    def __init__(self, status_code: int = 202, error: Exception | None = None):
        self.mails = []
        self._status_code = status_code
        self._error = error

    def send(self, mail):
        self.mails.append(mail)
        if self._error is not None:
            raise self._error
        return _Response(self._status_code)


class _SESClient:
    def __init__(self, status_code: int = 200):
        self.requests: list[dict] = []
        self._status_code = status_code

    def send_email(self, **request):
        self.requests.append(request)
        return {"ResponseMetadata": {"HTTPStatusCode": self._status_code}}


def _message(mailer):
    return (
        mailer.compose()
        .with_to(ManyRecipients((("a@x.com", "Alice"), ("b@x.com", None))))
        .with_subject("Application Log")
        .with_text_body("INFO start")
    )


def _config() -> MailConfig:
    return MailConfig(from_email="from@example.com", from_name="From")


def test_sendgrid_addresses_every_recipient():
    mailer = SendGridMailer("key", _config())
    client = _SendGridClient()
    mailer._client = client

    mailer.send(_message(mailer))

    assert len(client.mails) == 1
    payload = client.mails[0].get()
    to = payload["personalizations"][0]["to"]
    assert [entry["email"] for entry in to] == ["a@x.com", "b@x.com"]
    assert to[0]["name"] == "Alice"
    assert payload["subject"] == "Application Log"
    assert payload["content"] == [{"type": "text/plain", "value": "INFO start"}]


def test_sendgrid_error_status_raises_mail_error():
    mailer = SendGridMailer("key", _config())
    mailer._client = _SendGridClient(status_code=500)
    with pytest.raises(MailError):
        mailer.send(_message(mailer))


def test_sendgrid_client_exception_is_wrapped():
    original = RuntimeError("network")
    mailer = SendGridMailer("key", _config())
    mailer._client = _SendGridClient(error=original)
    with pytest.raises(MailError) as excinfo:
        mailer.send(_message(mailer))
    assert excinfo.value.__cause__ is original


def test_ses_formats_named_recipients():
    mailer = SESMailer(aws_region="eu-west-1", config=_config())
    client = _SESClient()
    mailer._client = client

    mailer.send(_message(mailer))

    assert len(client.requests) == 1
    request = client.requests[0]
    assert request["FromEmailAddress"] == "From <from@example.com>"
    assert request["Destination"] == {"ToAddresses": ["Alice <a@x.com>", "b@x.com"]}
    simple = request["Content"]["Simple"]
    assert simple["Subject"]["Data"] == "Application Log"
    assert simple["Body"]["Text"]["Data"] == "INFO start"


def test_ses_error_status_raises_mail_error():
    mailer = SESMailer(aws_region="eu-west-1", config=_config())
    client = _SESClient(status_code=500)
    mailer._client = client
    with pytest.raises(MailError):
        mailer.send(_message(mailer))
    assert len(client.requests) == 1
