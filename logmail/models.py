from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional, Sequence, Tuple, Union


class ConfigurationError(ValueError):
    """Raised when an email target is constructed with invalid settings."""


@dataclass(frozen=True)
class SingleRecipient:
    address: str

    def pairs(self) -> Tuple[Tuple[str, Optional[str]], ...]:
        return ((self.address, None),)


@dataclass(frozen=True)
class ManyRecipients:
    # Ordered (address, display name) pairs; name is None for bare addresses.
    entries: Tuple[Tuple[str, Optional[str]], ...]

    def pairs(self) -> Tuple[Tuple[str, Optional[str]], ...]:
        return self.entries


Recipients = Union[SingleRecipient, ManyRecipients]


def parse_recipients(value: Any) -> Recipients:
    """
    Validate a raw recipient setting into a Recipients variant.

    - A non-empty string is a single address.
    - A non-empty mapping is address -> display name, in insertion order.
    - A non-empty list/tuple is a sequence of bare addresses.
    """
    error = 'The "to" argument must be a mapping, a sequence or a string and must not be empty.'
    if isinstance(value, str):
        if not value:
            raise ConfigurationError(error)
        return SingleRecipient(value)
    if isinstance(value, Mapping):
        if not value:
            raise ConfigurationError(error)
        entries = []
        for address, name in value.items():
            if not _is_filled(address) or not _is_filled(name):
                raise ConfigurationError(f"Invalid recipient entry: {address!r} -> {name!r}")
            entries.append((address, name))
        return ManyRecipients(tuple(entries))
    if isinstance(value, (list, tuple)):
        if not value:
            raise ConfigurationError(error)
        addresses: Sequence[Any] = value
        for address in addresses:
            if not _is_filled(address):
                raise ConfigurationError(f"Invalid recipient address: {address!r}")
        return ManyRecipients(tuple((address, None) for address in addresses))
    raise ConfigurationError(error)


def _is_filled(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


@dataclass(frozen=True)
class OutgoingMessage:
    """A composed plain-text mail. Each ``with_*`` call returns a new copy."""

    to: Optional[Recipients] = None
    subject: str = ""
    text_body: str = ""

    def with_to(self, to: Recipients) -> "OutgoingMessage":
        return replace(self, to=to)

    def with_subject(self, subject: str) -> "OutgoingMessage":
        return replace(self, subject=subject)

    def with_text_body(self, text_body: str) -> "OutgoingMessage":
        return replace(self, text_body=text_body)

    def recipient_pairs(self) -> Tuple[Tuple[str, Optional[str]], ...]:
        if self.to is None:
            return ()
        return self.to.pairs()
