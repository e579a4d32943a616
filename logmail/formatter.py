from __future__ import annotations

import logging
import textwrap
from typing import Callable, Iterable, List, Optional

from .config import WRAP_WIDTH


def render_records(
    records: Iterable[logging.LogRecord],
    formatter: logging.Formatter,
    separator: str = "\n",
    on_error: Optional[Callable[[logging.LogRecord], None]] = None,
) -> str:
    """
    Format each record on its own line.

    Without ``on_error`` a formatting error propagates. With it, the callback
    is invoked from inside the ``except`` block and the record is skipped.
    """
    lines: List[str] = []
    for record in records:
        try:
            lines.append(formatter.format(record))
        except Exception:  # noqa: BLE001
            if on_error is None:
                raise
            on_error(record)
    return separator.join(lines)


def wrap_body(text: str, width: int = WRAP_WIDTH) -> str:
    """
    Word-wrap text for plain-text mail clients.

    Breaks only on whitespace and keeps words longer than ``width`` intact,
    so no content is lost. Existing line breaks are preserved.
    """
    wrapper = textwrap.TextWrapper(
        width=width,
        expand_tabs=False,
        replace_whitespace=False,
        break_long_words=False,
        break_on_hyphens=False,
    )
    lines: List[str] = []
    for line in text.split("\n"):
        if len(line) <= width:
            lines.append(line)
            continue
        lines.extend(wrapper.wrap(line) or [line])
    return "\n".join(lines)
