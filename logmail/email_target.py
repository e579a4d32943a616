from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from .config import DEFAULT_SUBJECT, EXPORT_FAILURE_MESSAGE, WRAP_WIDTH
from .formatter import wrap_body
from .mailer import MailSender
from .models import ConfigurationError, Recipients, parse_recipients

logger = logging.getLogger(__name__)

__all__ = ["BatchSource", "ConfigurationError", "EmailTarget", "ExportFailure"]


class ExportFailure(RuntimeError):
    """Raised when a batch of log records could not be delivered."""

    def __init__(self, message: str = EXPORT_FAILURE_MESSAGE, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class BatchSource(Protocol):
    def current_batch(self) -> Sequence[logging.LogRecord]: ...

    def render(self, batch: Sequence[logging.LogRecord]) -> str: ...


class EmailTarget:
    """
    Sends buffered log records to the configured addresses as one plain-text mail.

    ``recipients`` is a single address, a mapping of address -> display name,
    or a list of addresses. The mailer must already be configured.
    """

    def __init__(self, mailer: MailSender, recipients: Any, subject: str = ""):
        if mailer is None:
            raise ConfigurationError("A mailer is required.")
        self._mailer = mailer
        self._recipients = parse_recipients(recipients)
        self._subject = subject or DEFAULT_SUBJECT

    @property
    def recipients(self) -> Recipients:
        return self._recipients

    @property
    def subject(self) -> str:
        return self._subject

    def export(self, source: BatchSource) -> None:
        batch = source.current_batch()
        body = wrap_body(source.render(batch), WRAP_WIDTH)
        message = (
            self._mailer.compose()
            .with_to(self._recipients)
            .with_subject(self._subject)
            .with_text_body(body)
        )
        logger.debug("Exporting %s log records via %s", len(batch), getattr(self._mailer, "provider", "mailer"))
        try:
            self._mailer.send(message)
        except Exception as exc:  # noqa: BLE001
            raise ExportFailure(EXPORT_FAILURE_MESSAGE, cause=exc) from exc
