"""Logging for the viewer.

Every record carries the open document and the chat turn it belongs to. Both come from the
binding set by :func:`document_context`, unless the call site passes them in ``extra``. Any other
``extra`` keys are appended to the line as ``key=value`` fields.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
from typing import Any, Iterator, NamedTuple

from rich.logging import RichHandler

_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}
_NOT_FIELDS = _RECORD_ATTRS | {"doc", "turn", "fields"}


class _Binding(NamedTuple):
    doc: str = "-"
    turn: str = "-"


_binding: contextvars.ContextVar[_Binding] = contextvars.ContextVar("researchviewer_binding", default=_Binding())


class DocumentFilter(logging.Filter):
    """Stamp ``doc``, ``turn`` and the rendered ``extra`` fields on each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        bound = _binding.get()
        record.doc = getattr(record, "doc", None) or bound.doc
        record.turn = getattr(record, "turn", None) or bound.turn
        fields = sorted((k, v) for k, v in vars(record).items() if k not in _NOT_FIELDS and not k.startswith("_"))
        record.fields = "".join(f" {k}={v}" for k, v in fields)
        return True


@contextlib.contextmanager
def document_context(*, doc_id: str | None, turn: str | None = None) -> Iterator[None]:
    """Bind the open document (and optionally a chat turn) for records logged inside the block.

    A nested binding without ``turn`` keeps the enclosing turn.
    """

    outer = _binding.get()
    token = _binding.set(_Binding(doc=doc_id or "-", turn=turn or outer.turn))
    try:
        yield
    finally:
        _binding.reset(token)


def configure_logging(level: str = "INFO") -> None:
    """Install the rich console handler on the root logger.

    Safe to call once per CLI command and again from the HTTP app: the handler is installed
    only once, later calls just change the level.
    """

    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(getattr(h, "_researchviewer", False) for h in root.handlers):
        return

    handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True, show_path=False)
    handler.addFilter(DocumentFilter())
    handler.setFormatter(logging.Formatter("[doc=%(doc)s turn=%(turn)s] %(name)s: %(message)s%(fields)s"))
    handler._researchviewer = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_exception(logger: logging.Logger, msg: str, **context: Any) -> None:
    """Log the active exception with ``context`` as extra fields.

    Keys that clash with ``LogRecord`` attributes are prefixed with ``ctx_``.
    """

    extra = {(f"ctx_{k}" if k in _RECORD_ATTRS else k): v for k, v in context.items()}
    logger.exception(msg, extra=extra)
