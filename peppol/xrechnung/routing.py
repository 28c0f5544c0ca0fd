"""Leitweg-ID (XRechnung Routing-Identifier): Parser und Prüfziffern."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

LEITWEG_ID_PATTERN = re.compile(r"[0-9]{2,12}-[0-9A-Z]{1,30}-[0-9A-Z]{2}", re.IGNORECASE)
LEITWEG_ID_SCHEME = "Leitweg-ID"
LEITWEG_FORMAT_HINT = "[0-9]{2,12}-[A-Z0-9]{1,30}-[A-Z0-9]{2}"


class RouteType(str, Enum):
    DIRECT = "direct"  # direkt an die Behörde
    CENTRAL = "central"  # zentrale Rechnungseingangsplattform
    PORTAL = "portal"  # E-Rechnungs-Portal


@dataclass(frozen=True)
class RoutingParseResult:
    valid: bool
    coarse: Optional[str] = None
    fine: Optional[str] = None
    check: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "coarse": self.coarse,
            "fine": self.fine,
            "check": self.check,
            "error": self.error,
        }


@dataclass(frozen=True)
class RoutingIdentifier:
    coarse: str
    fine: str
    check: str

    def __str__(self) -> str:
        return f"{self.coarse}-{self.fine}-{self.check}"

    @staticmethod
    def matches(value: Optional[str]) -> bool:
        return bool(value) and LEITWEG_ID_PATTERN.fullmatch(value) is not None

    @classmethod
    def parse(cls, value: Optional[str]) -> RoutingParseResult:
        """Zerlegt ``grob-fein-prüfziffer``; ungültige Eingaben liefern nur ``valid=False``."""

        if not cls.matches(value):
            return RoutingParseResult(valid=False, error="Invalid Leitweg-ID format")
        coarse, fine, check = value.split("-")
        return RoutingParseResult(valid=True, coarse=coarse, fine=fine, check=check)

    @classmethod
    def from_string(cls, value: str) -> "RoutingIdentifier":
        result = cls.parse(value)
        if not result.valid:
            raise ValueError(f"Invalid Leitweg-ID: {value!r}")
        return cls(coarse=result.coarse, fine=result.fine, check=result.check)

    @property
    def check_digits_ok(self) -> bool:
        return generate_check_digits(self.coarse, self.fine) == self.check.upper()


def generate_check_digits(coarse: str, fine: str) -> str:
    """Prüfziffern nach ISO 7064 Mod 97-10; Buchstaben zählen als A=10 ... Z=35."""

    digits = "".join(
        str(ord(char) - 55) if char.isalpha() else char for char in (coarse + fine).upper()
    )
    checksum = 98 - (int(digits) * 100) % 97
    return f"{checksum:02d}"
