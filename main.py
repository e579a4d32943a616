from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from logmail import config
from logmail.bootstrap import install
from logmail.email_target import ExportFailure
from logmail.mailer import MailError
from logmail.models import ConfigurationError


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Mail log lines read from files or stdin as one batch.")
    parser.add_argument("files", nargs="*", help="Log files to read (default: stdin).")
    parser.add_argument("--level", default="INFO", help="Level to log each line at.")
    parser.add_argument("--category", default="logmail.cli", help="Logger name for the emitted records.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    try:
        settings = config.Settings.from_env()
        level = config.resolve_level(args.level)
    except ValueError as exc:
        logging.error("Missing configuration: %s", exc)
        return 1

    source_logger = logging.getLogger(args.category)
    source_logger.setLevel(level)
    source_logger.propagate = False
    try:
        target = install(settings, source_logger)
    except (ConfigurationError, MailError, ValueError) as exc:
        logging.error("Invalid mail configuration: %s", exc)
        return 1

    count = 0
    for line in _read_lines(args.files):
        source_logger.log(level, line)
        count += 1
    logging.info("Read %s lines", count)

    try:
        target.export_now()
    except ExportFailure as exc:
        logging.error("%s (%s)", exc, exc.cause)
        return 1
    finally:
        source_logger.removeHandler(target)
        target.close()
    return 0


def _read_lines(paths: List[str]):
    if not paths:
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    for path in paths:
        with open(path, encoding="utf-8") as handle:
            for line in handle:
                yield line.rstrip("\n")


if __name__ == "__main__":
    sys.exit(main())
