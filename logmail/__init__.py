"""Email sink for buffered application log records."""

__all__ = [
    "config",
    "models",
    "formatter",
    "mailer",
    "email_target",
    "log_target",
    "bootstrap",
]
