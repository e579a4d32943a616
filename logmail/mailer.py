from __future__ import annotations

import logging
from dataclasses import dataclass
from email.utils import formataddr
from typing import Optional, Protocol, Tuple

import boto3
import httpx
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail, To

from .models import OutgoingMessage

logger = logging.getLogger(__name__)


class MailError(Exception):
    """Raised when mail sending fails."""


class MailSender(Protocol):
    provider: str

    def compose(self) -> OutgoingMessage: ...

    def send(self, message: OutgoingMessage) -> None: ...


@dataclass(frozen=True)
class MailConfig:
    from_email: str
    from_name: str


class _BaseMailer:
    provider = "base"

    def compose(self) -> OutgoingMessage:
        return OutgoingMessage()

    @staticmethod
    def _recipients(message: OutgoingMessage) -> Tuple[Tuple[str, Optional[str]], ...]:
        pairs = message.recipient_pairs()
        if not pairs:
            raise MailError("Message has no recipients.")
        return pairs


class SendGridMailer(_BaseMailer):
    provider = "sendgrid"

    def __init__(self, api_key: str, config: MailConfig):
        self._client = SendGridAPIClient(api_key)
        self._from_email = Email(email=config.from_email, name=config.from_name)

    def send(self, message: OutgoingMessage) -> None:
        to_emails = [To(email=address, name=name) for address, name in self._recipients(message)]
        mail = Mail(
            from_email=self._from_email,
            to_emails=to_emails,
            subject=message.subject,
            plain_text_content=message.text_body,
        )
        try:
            response = self._client.send(mail)
        except Exception as exc:  # noqa: BLE001
            raise MailError(f"Failed to send email: {exc}") from exc
        if response.status_code >= 400:
            raise MailError(f"SendGrid returned error status: {response.status_code}")
        logger.info("Mail sent with status %s", response.status_code)


class BrevoMailer(_BaseMailer):
    provider = "brevo"
    endpoint = "https://api.brevo.com/v3/smtp/email"

    def __init__(self, api_key: str, config: MailConfig, timeout: float = 20.0):
        self._api_key = api_key
        self._config = config
        self._timeout = timeout

    def send(self, message: OutgoingMessage) -> None:
        to = []
        for address, name in self._recipients(message):
            entry = {"email": address}
            if name:
                entry["name"] = name
            to.append(entry)
        payload = {
            "sender": {"name": self._config.from_name, "email": self._config.from_email},
            "to": to,
            "subject": message.subject,
            "textContent": message.text_body,
        }
        headers = {"api-key": self._api_key, "content-type": "application/json"}
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self.endpoint, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise MailError(f"Brevo returned error status: {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise MailError(f"Failed to send email: {exc}") from exc
        logger.info("Mail sent with status %s", response.status_code)


class SESMailer(_BaseMailer):
    provider = "ses"

    def __init__(
        self,
        *,
        aws_region: str,
        config: MailConfig,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
    ) -> None:
        self._config = config
        client_kwargs = {"region_name": aws_region}
        if aws_access_key_id and aws_secret_access_key:
            client_kwargs["aws_access_key_id"] = aws_access_key_id
            client_kwargs["aws_secret_access_key"] = aws_secret_access_key
            if aws_session_token:
                client_kwargs["aws_session_token"] = aws_session_token
        self._client = boto3.client("sesv2", **client_kwargs)

    def send(self, message: OutgoingMessage) -> None:
        addresses = [formataddr((name, address)) if name else address for address, name in self._recipients(message)]
        request = {
            "FromEmailAddress": formataddr((self._config.from_name, self._config.from_email)),
            "Destination": {"ToAddresses": addresses},
            "Content": {
                "Simple": {
                    "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                    "Body": {"Text": {"Data": message.text_body, "Charset": "UTF-8"}},
                }
            },
        }
        try:
            response = self._client.send_email(**request)
        except Exception as exc:  # noqa: BLE001
            raise MailError(f"Failed to send email: {exc}") from exc
        status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if isinstance(status_code, int) and status_code >= 400:
            raise MailError(f"SES returned error status: {status_code}")
        logger.info("Mail sent with status %s", status_code)


def build_mailer(
    *,
    brevo_api_key: Optional[str],
    sendgrid_api_key: Optional[str],
    from_email: str,
    from_name: str,
    aws_region: Optional[str] = None,
    aws_access_key_id: Optional[str] = None,
    aws_secret_access_key: Optional[str] = None,
    aws_session_token: Optional[str] = None,
) -> MailSender:
    """
    Provider selection:
    - Brevo is default.
    - Otherwise SendGrid when its key is set.
    - Otherwise SES when an AWS region is set.
    """
    config = MailConfig(from_email=from_email, from_name=from_name)
    if brevo_api_key and brevo_api_key.strip():
        return BrevoMailer(brevo_api_key.strip(), config)
    if sendgrid_api_key and sendgrid_api_key.strip():
        return SendGridMailer(sendgrid_api_key.strip(), config)
    if aws_region and aws_region.strip():
        return SESMailer(
            aws_region=aws_region.strip(),
            aws_access_key_id=aws_access_key_id.strip() if aws_access_key_id else None,
            aws_secret_access_key=(aws_secret_access_key.strip() if aws_secret_access_key else None),
            aws_session_token=aws_session_token.strip() if aws_session_token else None,
            config=config,
        )
    raise MailError("No mail provider configured: set BREVO_API_KEY, SENDGRID_API_KEY or AWS_REGION.")
