"""XRechnung 2.3 CIUS-Overlay auf Peppol BIS Billing 3.0.

``extend`` ist eine reine Transformation: neue CustomizationID, Käuferreferenz
aus der Leitweg-ID (falls keine gesetzt ist) und eine idempotent eingefügte
``AdditionalDocumentReference`` mit Schema ``Leitweg-ID``. ``validate`` prüft
die BIS-Basisregeln und zusätzlich die BR-DE-Regeln.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from backend.core.logging import get_logger

from ..dto import Document, DocumentReference, Identifier
from ..rules import (
    Rule,
    RuleSet,
    Severity,
    ValidationResult,
    evaluate,
    evaluate_rules,
    rule_set_for,
)
from ..rules.bis_billing import is_bis_customization
from .routing import LEITWEG_FORMAT_HINT, LEITWEG_ID_SCHEME, RoutingIdentifier

logger = get_logger(__name__)

XRECHNUNG_CUSTOMIZATION_ID = (
    "urn:cen.eu:en16931:2017#compliant#urn:xoev-de:kosit:standard:xrechnung_2.3"
)
XRECHNUNG_PROFILE_ID = "urn:fdc:peppol.eu:2017:poacc:billing:01:1.0"
XRECHNUNG_PROFILE_LABEL = "XRechnung 2.3"
INVOICING_DATA_SHEET = "130"

CREDIT_TRANSFER_CODES = ("30", "58")

_SUPPLIER = "cac:AccountingSupplierParty/cac:Party"
_CUSTOMER = "cac:AccountingCustomerParty/cac:Party"


def is_xrechnung(document: Document) -> bool:
    return document.customization_id == XRECHNUNG_CUSTOMIZATION_ID


def routing_reference(document: Document) -> Optional[DocumentReference]:
    for ref in document.additional_references:
        if ref.id.scheme_id == LEITWEG_ID_SCHEME:
            return ref
    return None


def extend(document: Document, routing_id: str, buyer_reference: Optional[str] = None) -> Document:
    """Wendet das XRechnung-Overlay an; mehrfacher Aufruf fügt keine Duplikate ein."""

    logger.debug(
        "Applying XRechnung overlay",
        extra={"document_number": document.id, "document_kind": document.document_kind},
    )
    if buyer_reference:
        reference = buyer_reference
    else:
        reference = document.buyer_reference or routing_id

    additional = document.additional_references
    if routing_reference(document) is None:
        additional = additional + (
            DocumentReference(
                id=Identifier(value=routing_id, scheme_id=LEITWEG_ID_SCHEME),
                document_type_code=INVOICING_DATA_SHEET,
            ),
        )

    return replace(
        document,
        customization_id=XRECHNUNG_CUSTOMIZATION_ID,
        buyer_reference=reference,
        additional_references=additional,
    )


def _payment_account_present(doc: Document) -> bool:
    return all(
        means.payee_account is not None and bool(means.payee_account.id)
        for means in doc.payment_means
        if means.code in CREDIT_TRANSFER_CODES
    )


def _vat_breakdown_present(doc: Document) -> bool:
    if not any(category.id == "S" for category in doc.line_categories()):
        return True
    return bool(doc.tax_totals) and bool(doc.tax_totals[0].subtotals)


def _delivery_info_present(doc: Document) -> bool:
    if any(delivery.actual_delivery_date for delivery in doc.deliveries):
        return True
    period = doc.invoice_period
    return period is not None and bool(period.start_date or period.end_date)


def _routing_id_well_formed(doc: Document) -> bool:
    ref = routing_reference(doc)
    if ref is None:
        return True
    return RoutingIdentifier.parse(ref.id.value).valid


def _due_date_present(doc: Document) -> bool:
    if not any(means.code in CREDIT_TRANSFER_CODES for means in doc.payment_means):
        return True
    if getattr(doc, "due_date", None):
        return True
    return any(means.due_date for means in doc.payment_means)


def _contact(doc: Document):
    return doc.supplier.contact


def _address(party):
    return party.postal_address if party is not None else None


def _rule(rule_id, description, predicate, location, severity=Severity.ERROR) -> Rule:
    return Rule(id=rule_id, description=description, severity=severity,
                predicate=predicate, location=location)


OVERLAY_RULES = RuleSet(
    name="xrechnung-2.3-overlay",
    profile=XRECHNUNG_PROFILE_LABEL,
    rules=(
        _rule("BR-DE-1", "Payment account (IBAN) is required for credit transfer payment",
              _payment_account_present, "cac:PaymentMeans/cac:PayeeFinancialAccount/cbc:ID"),
        _rule("BR-DE-2",
              "Buyer reference (Leitweg-ID) is recommended for XRechnung invoices to German public sector",
              lambda doc: bool(doc.buyer_reference), "cbc:BuyerReference",
              severity=Severity.WARNING),
        _rule("BR-DE-3", "Seller contact telephone number is required for XRechnung",
              lambda doc: _contact(doc) is not None and bool(_contact(doc).telephone),
              f"{_SUPPLIER}/cac:Contact/cbc:Telephone"),
        _rule("BR-DE-4", "Seller contact email is required for XRechnung",
              lambda doc: _contact(doc) is not None and bool(_contact(doc).electronic_mail),
              f"{_SUPPLIER}/cac:Contact/cbc:ElectronicMail"),
        _rule("BR-DE-5", "Seller city is required for XRechnung",
              lambda doc: _address(doc.supplier) is not None and bool(doc.supplier.postal_address.city_name),
              f"{_SUPPLIER}/cac:PostalAddress/cbc:CityName"),
        _rule("BR-DE-6", "Seller postal code is required for XRechnung",
              lambda doc: _address(doc.supplier) is not None and bool(doc.supplier.postal_address.postal_zone),
              f"{_SUPPLIER}/cac:PostalAddress/cbc:PostalZone"),
        _rule("BR-DE-7", "Buyer city is required for XRechnung",
              lambda doc: _address(doc.customer) is not None and bool(doc.customer.postal_address.city_name),
              f"{_CUSTOMER}/cac:PostalAddress/cbc:CityName"),
        _rule("BR-DE-8", "Buyer postal code is required for XRechnung",
              lambda doc: _address(doc.customer) is not None and bool(doc.customer.postal_address.postal_zone),
              f"{_CUSTOMER}/cac:PostalAddress/cbc:PostalZone"),
        _rule("BR-DE-9", "VAT breakdown (TaxSubtotal) is required when standard VAT (S) is used",
              _vat_breakdown_present, "cac:TaxTotal/cac:TaxSubtotal"),
        _rule("BR-DE-10", "Delivery date or invoice period is recommended for XRechnung",
              _delivery_info_present, "cac:Delivery/cbc:ActualDeliveryDate or cac:InvoicePeriod",
              severity=Severity.WARNING),
        _rule("BR-DE-17", f"Leitweg-ID does not match required format: {LEITWEG_FORMAT_HINT}",
              _routing_id_well_formed, "cbc:BuyerReference or cac:AdditionalDocumentReference"),
        _rule("BR-DE-21", "Payment due date is recommended for credit transfer payment",
              _due_date_present, "cbc:DueDate or cac:PaymentMeans/cbc:PaymentDueDate",
              severity=Severity.WARNING),
    ),
)


def _accepts_xrechnung(doc: Document) -> bool:
    return is_xrechnung(doc) or is_bis_customization(doc.customization_id)


def base_rule_set(kind: str) -> RuleSet:
    """BIS-Regelsatz, dessen R001 zusätzlich die XRechnung-CustomizationID akzeptiert."""

    base = rule_set_for(kind)
    r001 = base.get("PEPPOL-EN16931-R001")
    return base.override(
        replace(
            r001,
            description="Customization ID must match Peppol BIS Billing 3.0 or XRechnung 2.3",
            predicate=_accepts_xrechnung,
        )
    ).renamed(f"{base.name}+xrechnung-base")


def rule_set(kind: str) -> RuleSet:
    base = base_rule_set(kind)
    return base.extend(
        *OVERLAY_RULES,
        name=f"xrechnung-2.3-{kind}",
        profile=XRECHNUNG_PROFILE_LABEL,
    )


def validate(document: Document, **kwargs) -> ValidationResult:
    """BIS-Basisregeln + Invarianten + BR-DE-Regeln in einem Ergebnis."""

    return evaluate(document, rule_set(document.document_kind), **kwargs)


def validate_overlay(document: Document, *, clock=None) -> ValidationResult:
    """Nur die BR-DE-Befunde (ohne Basisregeln und Invarianten)."""

    result = ValidationResult(profile=XRECHNUNG_PROFILE_LABEL)
    result.extend(evaluate_rules(document, OVERLAY_RULES))
    if clock is not None:
        result.validated_at = clock()
    return result


def is_german_public_sector(document: Document) -> bool:
    address = document.customer.postal_address
    if address is None or address.country_code != "DE":
        return False
    return bool(document.buyer_reference) or routing_reference(document) is not None
