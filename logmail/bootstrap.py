from __future__ import annotations

import logging
from typing import Optional

from .config import Settings
from .email_target import EmailTarget
from .log_target import LogTarget
from .mailer import MailSender, build_mailer

logger = logging.getLogger(__name__)


def build_target(settings: Settings, mailer: Optional[MailSender] = None) -> LogTarget:
    if mailer is None:
        mailer = build_mailer(
            brevo_api_key=settings.brevo_api_key,
            sendgrid_api_key=settings.sendgrid_api_key,
            from_email=settings.from_email,
            from_name=settings.from_name,
            aws_region=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,
        )
    exporter = EmailTarget(mailer, settings.to_email, settings.subject)
    logger.info(
        "Using mail provider=%s recipients=%s",
        getattr(mailer, "provider", "custom"),
        len(exporter.recipients.pairs()),
    )
    return LogTarget(
        exporter,
        levels=settings.levels,
        categories=settings.categories,
        except_categories=settings.except_categories,
        export_interval=settings.export_interval,
    )


def install(
    settings: Settings,
    target_logger: Optional[logging.Logger] = None,
    mailer: Optional[MailSender] = None,
) -> LogTarget:
    """Attach an email LogTarget to ``target_logger`` (the root logger by default)."""
    target = build_target(settings, mailer=mailer)
    (target_logger or logging.getLogger()).addHandler(target)
    return target
