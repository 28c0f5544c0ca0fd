"""Numerische Konsistenzprüfungen (EN 16931 BR-CO-*, Steuersätze) und Hinweise.

Diese Prüfungen rechnen und laufen deshalb nicht über die Regeltabellen. Alle
Beträge werden als ``Decimal`` verglichen; eine Abweichung größer als die
Toleranz (Standard 0.01) ist ein Fehler.
"""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import List, Optional

from ..dto import CREDIT_NOTE_KIND, Amount, Document, UBL_VERSION_ID
from .findings import Severity, ValidationFinding

ZERO = Decimal("0.00")
DEFAULT_TOLERANCE = Decimal("0.01")


def _value(amount: Optional[Amount]) -> Decimal:
    return amount.value if amount is not None else ZERO


def _fmt(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01')):.2f}"


def _labels(document: Document) -> tuple[str, str]:
    if document.document_kind == CREDIT_NOTE_KIND:
        return "Credit Note", "cac:CreditNoteLine"
    return "Invoice", "cac:InvoiceLine"


def _error(code: str, message: str, location: str) -> ValidationFinding:
    return ValidationFinding(code=code, message=message, severity=Severity.ERROR, location=location)


def check_duplicate_line_ids(document: Document) -> List[ValidationFinding]:
    label, line_element = _labels(document)
    counts = Counter(line.id for line in document.lines)
    duplicates = [line_id for line_id, count in counts.items() if count > 1]
    if not duplicates:
        return []
    return [
        _error(
            "BR-CO-21",
            f"Duplicate {label} line identifiers found: {', '.join(duplicates)}",
            f"{line_element}/cbc:ID",
        )
    ]


def check_monetary_totals(
    document: Document, tolerance: Decimal = DEFAULT_TOLERANCE
) -> List[ValidationFinding]:
    label, _ = _labels(document)
    totals = document.monetary_total
    findings: List[ValidationFinding] = []

    line_sum = sum((line.line_extension_amount.value for line in document.lines), ZERO)
    line_extension = _value(totals.line_extension_amount)
    if abs(line_sum - line_extension) > tolerance:
        findings.append(
            _error(
                "BR-CO-10",
                f"Sum of {label} line net amounts ({_fmt(line_sum)}) does not match "
                f"Line extension amount ({_fmt(line_extension)})",
                "cac:LegalMonetaryTotal/cbc:LineExtensionAmount",
            )
        )

    allowances = _value(totals.allowance_total_amount)
    charges = _value(totals.charge_total_amount)
    expected = line_extension - allowances + charges
    tax_exclusive = _value(totals.tax_exclusive_amount)
    if abs(expected - tax_exclusive) > tolerance:
        findings.append(
            _error(
                "BR-CO-13",
                f"Tax exclusive amount ({_fmt(tax_exclusive)}) does not match calculation: "
                f"line extension ({_fmt(line_extension)}) - allowances ({_fmt(allowances)}) "
                f"+ charges ({_fmt(charges)}) = {_fmt(expected)}",
                "cac:LegalMonetaryTotal/cbc:TaxExclusiveAmount",
            )
        )

    tax_inclusive = _value(totals.tax_inclusive_amount)
    if document.tax_totals:
        tax_amount = _value(document.tax_amount)
        expected = tax_exclusive + tax_amount
        if abs(expected - tax_inclusive) > tolerance:
            findings.append(
                _error(
                    "BR-CO-15",
                    f"Tax inclusive amount ({_fmt(tax_inclusive)}) does not match calculation: "
                    f"tax exclusive ({_fmt(tax_exclusive)}) + tax amount ({_fmt(tax_amount)}) "
                    f"= {_fmt(expected)}",
                    "cac:LegalMonetaryTotal/cbc:TaxInclusiveAmount",
                )
            )

    prepaid = _value(totals.prepaid_amount)
    rounding = _value(totals.payable_rounding_amount)
    expected = tax_inclusive - prepaid + rounding
    payable = _value(totals.payable_amount)
    if abs(expected - payable) > tolerance:
        findings.append(
            _error(
                "BR-CO-16",
                f"Payable amount ({_fmt(payable)}) does not match calculation: "
                f"tax inclusive ({_fmt(tax_inclusive)}) - prepaid ({_fmt(prepaid)}) "
                f"+ rounding ({_fmt(rounding)}) = {_fmt(expected)}",
                "cac:LegalMonetaryTotal/cbc:PayableAmount",
            )
        )

    return findings


def check_tax_rates(document: Document) -> List[ValidationFinding]:
    label, line_element = _labels(document)
    findings: List[ValidationFinding] = []
    for line in document.lines:
        category = line.item.tax_category
        location = f"{line_element}[cbc:ID='{line.id}']/cac:Item/cac:ClassifiedTaxCategory"
        if category.id == "S" and (category.percent is None or category.percent < 0):
            findings.append(
                _error(
                    "BR-S-08",
                    f"{label} line {line.id}: Standard rated (S) items must have a non-negative tax rate",
                    location,
                )
            )
        if category.id == "Z" and (category.percent is None or category.percent != 0):
            findings.append(
                _error(
                    "BR-Z-08",
                    f"{label} line {line.id}: Zero rated (Z) items must have a tax rate of 0",
                    location,
                )
            )
    return findings


def check_ubl_version(document: Document) -> List[ValidationFinding]:
    version = document.ubl_version_id
    if version and version != UBL_VERSION_ID:
        return [
            ValidationFinding(
                code="UBL-CR-001",
                message=f"UBL version is {version}, expected {UBL_VERSION_ID}",
                severity=Severity.WARNING,
                location="cbc:UBLVersionID",
            )
        ]
    return []


def invariant_findings(
    document: Document, *, tolerance: Decimal = DEFAULT_TOLERANCE
) -> List[ValidationFinding]:
    return [
        *check_duplicate_line_ids(document),
        *check_monetary_totals(document, tolerance),
        *check_tax_rates(document),
        *check_ubl_version(document),
    ]


def advisory_findings(document: Document) -> List[ValidationFinding]:
    """Empfohlene Felder; beeinflusst ``valid`` nie."""

    findings: List[ValidationFinding] = []
    if not document.buyer_reference:
        findings.append(
            ValidationFinding(
                code="PEPPOL-INFO-001",
                message="Buyer reference is recommended for easier payment reconciliation",
                severity=Severity.INFO,
                location="cbc:BuyerReference",
            )
        )
    if not document.payment_means:
        findings.append(
            ValidationFinding(
                code="PEPPOL-INFO-002",
                message="Payment means information is recommended",
                severity=Severity.INFO,
                location="cac:PaymentMeans",
            )
        )
    return findings
