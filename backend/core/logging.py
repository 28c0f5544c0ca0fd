"""JSON structured logging with mandatory fields and PII redaction."""

import json
import logging
import re
import sys
import threading
from datetime import datetime, timezone
from typing import Optional

from backend.core.config import settings

# Thread-local storage for context
_context = threading.local()

_RESERVED_ATTRS = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "message", "taskName",
    )
)


class _Redactor:
    """Masks IBANs, e-mail addresses and phone numbers in free text."""

    # IBAN pattern: 2 letters + 2 digits + up to 30 alphanumeric characters
    iban_pattern = re.compile(r"\b([A-Z]{2}\d{2}[A-Z0-9]{11,30})\b")
    email_pattern = re.compile(r"(\b[\w.+-]+@[\w-]+\.[\w.-]+\b)")
    # Phone pattern: optional +, digits, spaces, dashes, slashes
    phone_pattern = re.compile(r"(\+\d[\d \-/]{6,}\d)")

    def redact(self, text):
        if not isinstance(text, str):
            return text
        text = self.iban_pattern.sub(self._mask_iban, text)
        text = self.email_pattern.sub(self._mask_email, text)
        text = self.phone_pattern.sub(self._mask_phone, text)
        return text

    @staticmethod
    def _mask_iban(match) -> str:
        """Mask IBAN: show first 2 chars, mask the rest."""
        iban = match.group(1)
        return iban[:2] + "*" * (len(iban) - 2)

    @staticmethod
    def _mask_email(match) -> str:
        """Mask email: show first char of user, keep domain."""
        user, domain = match.group(1).split("@", 1)
        masked_user = "*" if len(user) <= 1 else user[0] + "*" * (len(user) - 1)
        return f"{masked_user}@{domain}"

    @staticmethod
    def _mask_phone(match) -> str:
        """Mask phone: show first 3 chars, mask the rest."""
        phone = match.group(1)
        return phone[:3] + "*" * (len(phone) - 3)


_redactor = _Redactor()


def redact_pii(text):
    """Redact PII from text (non-strings pass through unchanged)."""
    return _redactor.redact(text)


class PIIRedactionFilter(logging.Filter):
    """Filter to redact PII from log messages and string arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = redact_pii(str(record.msg))
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(redact_pii(arg) for arg in record.args)
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter with mandatory fields and PII redaction."""

    def format(self, record):
        trace_id = getattr(_context, "trace_id", None) or "unknown"
        document_id = getattr(record, "document_id", None) or getattr(_context, "document_id", None)

        log_entry = {
            "trace_id": trace_id,
            "document_id": document_id,
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": redact_pii(record.getMessage()),
            "ts_utc": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        # Extra fields from record (with PII redaction)
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in log_entry:
                continue
            log_entry[key] = redact_pii(value)

        return json.dumps(log_entry, default=str)


def set_trace_id(trace_id: Optional[str]) -> None:
    """Set trace ID for current thread context."""
    _context.trace_id = trace_id


def set_document_id(document_id: Optional[str]) -> None:
    """Set Peppol document ID for current thread context."""
    _context.document_id = document_id


def init_logging(level: Optional[str] = None, stream=None) -> None:
    """Initialize JSON logging on the root logger (stdout unless ``stream`` is given)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(PIIRedactionFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with PII redaction applied."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, PIIRedactionFilter) for f in logger.filters):
        logger.addFilter(PIIRedactionFilter())
    return logger
