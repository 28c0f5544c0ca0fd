"""Peppol-Teilnehmer sowie Dokumenttyp- und Prozess-Identifikatoren."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from .dto import CREDIT_NOTE_KIND, ensure_kind

_SCHEME_PATTERN = re.compile(r"[0-9]{4}")

DOCUMENT_TYPE_SCHEME = "busdox-docid-qns"
PROCESS_SCHEME = "cenbii-procid-ubl"


@dataclass(frozen=True)
class Participant:
    """Netzwerk-Endpunkt ``scheme:identifier`` (z. B. ``0088`` = GLN)."""

    scheme: str
    identifier: str
    name: Optional[str] = field(default=None, compare=False)
    country_code: Optional[str] = field(default=None, compare=False)

    @property
    def is_valid(self) -> bool:
        return bool(_SCHEME_PATTERN.fullmatch(self.scheme or "")) and bool(
            (self.identifier or "").strip()
        )

    def __str__(self) -> str:
        return f"{self.scheme}:{self.identifier}"

    def to_dict(self) -> dict:
        return {
            "scheme": self.scheme,
            "identifier": self.identifier,
            "name": self.name,
            "country_code": self.country_code,
        }


@dataclass(frozen=True)
class DocumentTypeId:
    scheme: str
    identifier: str
    name: str

    def __str__(self) -> str:
        return f"{self.scheme}::{self.identifier}"


@dataclass(frozen=True)
class ProcessId:
    scheme: str
    identifier: str

    def __str__(self) -> str:
        return f"{self.scheme}::{self.identifier}"


INVOICE_DOCUMENT_TYPE = DocumentTypeId(
    scheme=DOCUMENT_TYPE_SCHEME,
    identifier=(
        "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2::Invoice"
        "##urn:cen.eu:en16931:2017#compliant#urn:fdc:peppol.eu:2017:poacc:billing:3.0::2.1"
    ),
    name="Peppol BIS Billing 3.0 Invoice",
)

CREDIT_NOTE_DOCUMENT_TYPE = DocumentTypeId(
    scheme=DOCUMENT_TYPE_SCHEME,
    identifier=(
        "urn:oasis:names:specification:ubl:schema:xsd:CreditNote-2::CreditNote"
        "##urn:cen.eu:en16931:2017#compliant#urn:fdc:peppol.eu:2017:poacc:billing:3.0::2.1"
    ),
    name="Peppol BIS Billing 3.0 Credit Note",
)

BILLING_PROCESS = ProcessId(
    scheme=PROCESS_SCHEME,
    identifier="urn:fdc:peppol.eu:2017:poacc:billing:01:1.0",
)


def document_type_for(kind: str) -> DocumentTypeId:
    ensure_kind(kind)
    if kind == CREDIT_NOTE_KIND:
        return CREDIT_NOTE_DOCUMENT_TYPE
    return INVOICE_DOCUMENT_TYPE


def format_participant(participant: Participant) -> str:
    return str(participant)


def parse_participant(value: str) -> Optional[Participant]:
    """``"0088:7300010000001"`` -> Participant; ohne Doppelpunkt -> ``None``.

    Nur der erste Doppelpunkt trennt; weitere bleiben Teil des Identifiers.
    """

    if not value or ":" not in value:
        return None
    scheme, identifier = value.split(":", 1)
    return Participant(scheme=scheme, identifier=identifier)
