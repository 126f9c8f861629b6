"""Structured trace records for pipeline checkpoints."""

from __future__ import annotations

import logging
from contextlib import contextmanager

DEFAULT_LOGGER = "treesync"


def get_logger(logger: logging.Logger | None = None) -> logging.Logger:
    """Return *logger*, or the package logger when None."""
    return logger if logger is not None else logging.getLogger(DEFAULT_LOGGER)


@contextmanager
def debug_logging(log: logging.Logger, enabled: bool = True):
    """Lower *log* to DEBUG for the duration of the block.

    The previous level is restored on exit, so a caller's logger is left
    as it was configured.
    """
    if not enabled or log.getEffectiveLevel() <= logging.DEBUG:
        yield log
        return
    previous = log.level
    log.setLevel(logging.DEBUG)
    try:
        yield log
    finally:
        log.setLevel(previous)


def trace(log: logging.Logger, event: str, level: int = logging.DEBUG, **fields) -> None:
    """Emit one checkpoint record.

    The record carries ``sync_event`` and ``sync_fields`` attributes so a
    handler or filter can consume it without parsing the message.
    """
    if not log.isEnabledFor(level):
        return
    detail = " ".join(f"{k}={v}" for k, v in fields.items())
    log.log(
        level,
        "%s %s", event, detail,
        extra={"sync_event": event, "sync_fields": dict(fields)},
    )


def describe_params(params: dict) -> dict:
    """Copy gateway call params for logging, replacing payloads by their size."""
    shown = dict(params)
    content = shown.get("content")
    if isinstance(content, (bytes, str)):
        shown["content"] = f"[{len(content)} bytes]"
    entries = shown.get("entries")
    if entries is not None:
        shown["entries"] = f"[{len(entries)} entries]"
    return shown
