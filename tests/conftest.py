import json
import socket
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path

import pytest


VIOLATIONS = []
ARTIFACTS_DIR = Path("artifacts")
ARTIFACTS_DIR.mkdir(parents=True, exist_ok=True)
REPORT = ARTIFACTS_DIR / "egress-violations.json"

BASE_NOW = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True, scope="session")
def egress_guard():
    # Rendering, rules and lifecycle must never resolve or connect anywhere
    real_getaddrinfo = socket.getaddrinfo
    real_create_connection = socket.create_connection

    def guard_getaddrinfo(host, *args, **kwargs):
        VIOLATIONS.append({"fn": "getaddrinfo", "host": str(host)})
        raise RuntimeError("Egress blocked: getaddrinfo disallowed")

    def guard_create_connection(address, *args, **kwargs):
        VIOLATIONS.append({"fn": "create_connection", "address": str(address)})
        raise RuntimeError("Egress blocked: create_connection disallowed")

    socket.getaddrinfo = guard_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = guard_create_connection  # type: ignore[assignment]

    yield

    socket.getaddrinfo = real_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = real_create_connection  # type: ignore[assignment]

    REPORT.write_text(json.dumps(VIOLATIONS, indent=2))


@pytest.fixture
def clock():
    """Monoton steigende Uhr: jeder Aufruf eine Sekunde später."""

    tick = count()

    def _next() -> datetime:
        return BASE_NOW + timedelta(seconds=next(tick))

    return _next


@pytest.fixture
def fixed_now():
    return lambda: BASE_NOW
