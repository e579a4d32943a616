from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from .config import DEFAULT_DATE_FORMAT, DEFAULT_EXPORT_INTERVAL, DEFAULT_RECORD_FORMAT, resolve_level
from .email_target import BatchSource
from .formatter import render_records


class Exporter(Protocol):
    def export(self, source: BatchSource) -> None: ...


def matches_category(name: str, patterns: Iterable[str]) -> bool:
    """A pattern matches a logger name exactly, or as a prefix when it ends with ``*``."""
    for pattern in patterns:
        if name == pattern:
            return True
        if pattern.endswith("*") and name.startswith(pattern.rstrip("*")):
            return True
    return False


class LogTarget(logging.Handler):
    """
    Buffers log records that pass the level/category filters and hands them
    to an exporter in batches.

    An export happens when ``export_interval`` records are buffered, on
    ``flush()`` and on ``close()``. Export failures raised by ``export_now()``
    propagate; the ``logging`` entry points report them via ``handleError``.
    """

    def __init__(
        self,
        exporter: Exporter,
        *,
        levels: Iterable[Union[int, str]] = (),
        categories: Iterable[str] = (),
        except_categories: Iterable[str] = (),
        export_interval: int = DEFAULT_EXPORT_INTERVAL,
        enabled: bool = True,
        fmt: str = DEFAULT_RECORD_FORMAT,
        datefmt: str = DEFAULT_DATE_FORMAT,
        level: int = logging.NOTSET,
    ) -> None:
        # Validate before Handler.__init__ registers us for logging.shutdown.
        if export_interval < 0:
            raise ValueError("export_interval must not be negative.")
        self.exporter = exporter
        self.levels = frozenset(resolve_level(item) for item in levels)
        self.categories = tuple(categories)
        self.except_categories = tuple(except_categories)
        self.export_interval = export_interval
        self.enabled = enabled
        self.buffer: List[logging.LogRecord] = []
        self._batch: Optional[Tuple[logging.LogRecord, ...]] = None
        super().__init__(level)
        self.setFormatter(logging.Formatter(fmt, datefmt))

    def accepts(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return False
        if self.levels and record.levelno not in self.levels:
            return False
        if self.categories and not matches_category(record.name, self.categories):
            return False
        return not matches_category(record.name, self.except_categories)

    def emit(self, record: logging.LogRecord) -> None:
        if not self.accepts(record):
            return
        self.buffer.append(record)
        if self._batch is None and self.export_interval > 0 and len(self.buffer) >= self.export_interval:
            try:
                self.export_now()
            except Exception:  # noqa: BLE001
                self.handleError(record)

    def current_batch(self) -> Sequence[logging.LogRecord]:
        if self._batch is not None:
            return self._batch
        return tuple(self.buffer)

    def render(self, batch: Sequence[logging.LogRecord], separator: str = "\n") -> str:
        # A record that cannot be formatted is reported and left out of the body.
        return render_records(batch, self.formatter or logging.Formatter(), separator, on_error=self.handleError)

    def export_now(self) -> None:
        self.acquire()
        try:
            # Records logged while exporting wait for the next batch.
            if not self.buffer or self._batch is not None:
                return
            batch = tuple(self.buffer)
            self._batch = batch
            try:
                self.exporter.export(self)
            finally:
                self._batch = None
                del self.buffer[: len(batch)]
        finally:
            self.release()

    def flush(self) -> None:
        self.acquire()
        try:
            last = self.buffer[-1] if self.buffer else None
            try:
                self.export_now()
            except Exception:  # noqa: BLE001
                self.handleError(last)
        finally:
            self.release()

    def close(self) -> None:
        try:
            self.flush()
        finally:
            super().close()
