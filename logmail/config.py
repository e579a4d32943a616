from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from email.utils import getaddresses
from typing import Dict, Optional, Tuple, Union

# --------------------------------
# Defaults

# Subject used when none (or an empty one) is configured
DEFAULT_SUBJECT = "Application Log"

# Plain-text mail clients read best at this width
WRAP_WIDTH = 70

# Number of buffered records that triggers an export (0 disables)
DEFAULT_EXPORT_INTERVAL = 1000

EXPORT_FAILURE_MESSAGE = "Unable to export log through email."

DEFAULT_RECORD_FORMAT = "%(asctime)s [%(levelname)s][%(name)s] %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_FROM_NAME = "Application Log Mailer"
# --------------------------------


@dataclass
class Settings:
    to_email: Dict[str, str]
    from_email: str
    from_name: str = DEFAULT_FROM_NAME
    subject: str = DEFAULT_SUBJECT
    brevo_api_key: str | None = None
    sendgrid_api_key: str | None = None
    aws_region: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None
    levels: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    except_categories: Tuple[str, ...] = ()
    export_interval: int = DEFAULT_EXPORT_INTERVAL

    @staticmethod
    def from_env(from_name_default: str = DEFAULT_FROM_NAME) -> "Settings":
        def require(name: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                raise ValueError(f"Environment variable {name} is required.")
            return value

        def optional_with_default(name: str, default: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                return default
            return value.strip()

        def optional(name: str) -> Optional[str]:
            value = os.getenv(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        def as_list(name: str) -> Tuple[str, ...]:
            value = optional(name)
            if value is None:
                return ()
            return tuple(part.strip() for part in value.split(",") if part.strip())

        interval_raw = optional_with_default("LOG_EMAIL_EXPORT_INTERVAL", str(DEFAULT_EXPORT_INTERVAL))
        try:
            export_interval = int(interval_raw)
        except ValueError as exc:
            raise ValueError(f"LOG_EMAIL_EXPORT_INTERVAL must be an integer: {interval_raw}") from exc
        if export_interval < 0:
            raise ValueError("LOG_EMAIL_EXPORT_INTERVAL must not be negative.")

        levels = as_list("LOG_EMAIL_LEVELS")
        for level in levels:
            resolve_level(level)

        return Settings(
            to_email=parse_recipients(require("LOG_EMAIL_TO")),
            from_email=require("FROM_EMAIL"),
            from_name=optional_with_default("FROM_NAME", from_name_default),
            subject=optional_with_default("LOG_EMAIL_SUBJECT", DEFAULT_SUBJECT),
            brevo_api_key=optional("BREVO_API_KEY"),
            sendgrid_api_key=optional("SENDGRID_API_KEY"),
            aws_region=optional("AWS_REGION") or optional("AWS_DEFAULT_REGION"),
            aws_access_key_id=optional("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=optional("AWS_SECRET_ACCESS_KEY"),
            aws_session_token=optional("AWS_SESSION_TOKEN"),
            levels=levels,
            categories=as_list("LOG_EMAIL_CATEGORIES"),
            except_categories=as_list("LOG_EMAIL_EXCEPT"),
            export_interval=export_interval,
        )


def parse_recipients(value: str) -> Dict[str, str]:
    """
    Parse a comma-separated recipient list into an address -> name mapping.

    Accepts plain addresses and ``Name <address>`` entries. Entries without a
    display name map to the address itself.
    """
    recipients: Dict[str, str] = {}
    for name, address in getaddresses([value]):
        address = address.strip()
        if not address:
            continue
        recipients[address] = name.strip() or address
    if not recipients:
        raise ValueError(f"No valid recipient address found in: {value}")
    return recipients


def resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved
