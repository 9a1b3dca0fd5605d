"""Process-wide logging setup.

Repository and store log calls pass ``op`` (the operation) and ``task`` (the
task id) as ``extra``; records without them render ``-``.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s op=%(op)s task=%(task)s %(message)s"
CONTEXT_FIELDS = ("op", "task")

_configured = False


class ContextFormatter(logging.Formatter):
    """Formatter that fills in missing task context fields."""

    def format(self, record: logging.LogRecord) -> str:
        for key in CONTEXT_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, "-")
        return super().format(record)


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the root logger once and apply ``level``.

    The uvicorn loggers follow the same level so access logs match.
    """
    global _configured
    resolved_level = logging.getLevelName((level or "INFO").upper())
    if not isinstance(resolved_level, int):
        resolved_level = logging.INFO

    root = logging.getLogger()
    if not _configured and not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ContextFormatter(LOG_FORMAT))
        root.addHandler(handler)
    _configured = True

    root.setLevel(resolved_level)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(resolved_level)
