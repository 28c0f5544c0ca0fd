"""Regeltabellen Peppol BIS Billing 3.0 (EN 16931 Pflichtfelder, PEPPOL-EN16931-R*).

Invoice und CreditNote teilen sich die meisten Regel-IDs. Die Gutschrift
übernimmt die Prädikate der Rechnungsregeln, ersetzt nur den Wortlaut und die
Typcode-Prüfung und stuft die fehlende Rechnungsreferenz (BR-55) als Warnung ein.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from ..dto import (
    BIS_BILLING_CUSTOMIZATION_ID,
    BIS_BILLING_PROFILE_ID,
    CREDIT_NOTE_KIND,
    CreditNote,
    Document,
    Party,
    ensure_kind,
)
from .engine import Rule, RuleSet, RuleSetError, evaluate
from .findings import Severity, ValidationResult

PROFILE_LABEL = "Peppol BIS Billing 3.0"

INVOICE_TYPE_CODES = ("380", "381", "384", "389", "751")
CREDIT_NOTE_TYPE_CODES = ("381", "396")
TAX_CATEGORY_CODES = ("S", "Z", "E", "AE", "K", "G", "O", "L", "M")

CURRENCY_CODES = (
    "EUR", "USD", "GBP", "SEK", "NOK", "DKK", "CHF", "PLN", "CZK", "HUF",
    "RON", "BGN", "HRK", "ISK", "ALL", "BAM", "MKD", "RSD", "UAH",
)

# Peppol EAS (electronic address scheme) code list
ENDPOINT_SCHEMES = frozenset(
    (
        "0002", "0007", "0009", "0037", "0060", "0088", "0096", "0106", "0130",
        "0135", "0142", "0151", "0183", "0184", "0190", "0191", "0192", "0193",
        "0195", "0196", "0198", "0199", "0200", "0201", "0202", "0204", "0208",
        "0209", "0210", "0211", "0212", "0213",
        "9901", "9902", "9904", "9905", "9906", "9907", "9908", "9909", "9910",
        "9913", "9914", "9915", "9917", "9918", "9919", "9920", "9921", "9922",
        "9923", "9925", "9926", "9927", "9928", "9929", "9930", "9931", "9932",
        "9933", "9934", "9935", "9936", "9937", "9938", "9939", "9940", "9941",
        "9942", "9943", "9944", "9945", "9946", "9947", "9948", "9949", "9950",
        "9951", "9952", "9953", "9954", "9955", "9956", "9957", "9958", "9959",
        "9960", "9961", "9962", "9963", "9964", "9965", "9966", "9967", "9968",
        "9969", "9970", "9971", "9972",
    )
)

_SUPPLIER = "cac:AccountingSupplierParty/cac:Party"
_CUSTOMER = "cac:AccountingCustomerParty/cac:Party"


def _rule(
    rule_id: str,
    description: str,
    predicate,
    location: Optional[str] = None,
    severity: Severity = Severity.ERROR,
) -> Rule:
    return Rule(
        id=rule_id,
        description=description,
        severity=severity,
        predicate=predicate,
        location=location,
    )


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _party_name(party: Optional[Party]) -> bool:
    return party is not None and _has_text(party.display_name)


def _country(party: Optional[Party]) -> bool:
    return (
        party is not None
        and party.postal_address is not None
        and _has_text(party.postal_address.country_code)
    )


def _endpoint_scheme_ok(party: Optional[Party]) -> bool:
    scheme = party.endpoint_id.scheme_id if party is not None else None
    return not scheme or scheme in ENDPOINT_SCHEMES


def _all_lines(predicate):
    return lambda doc: all(predicate(line) for line in doc.lines)


def is_bis_customization(customization_id: Optional[str]) -> bool:
    return customization_id == BIS_BILLING_CUSTOMIZATION_ID or (
        "peppol.eu:2017:poacc:billing:3.0" in (customization_id or "")
    )


def is_bis_profile(profile_id: Optional[str]) -> bool:
    return profile_id == BIS_BILLING_PROFILE_ID or "peppol.eu" in (profile_id or "")


INVOICE_RULES = RuleSet(
    name="bis-billing-3.0-invoice",
    profile=PROFILE_LABEL,
    rules=(
        _rule("BR-01", "An Invoice shall have an Invoice number (BT-1).",
              lambda doc: _has_text(doc.id), "cbc:ID"),
        _rule("BR-02", "An Invoice shall have an Invoice issue date (BT-2).",
              lambda doc: doc.issue_date is not None, "cbc:IssueDate"),
        _rule("BR-04", "An Invoice shall have an Invoice type code (BT-3).",
              lambda doc: doc.type_code in INVOICE_TYPE_CODES, "cbc:InvoiceTypeCode"),
        _rule("BR-05", "An Invoice shall have an Invoice currency code (BT-5).",
              lambda doc: doc.currency_code in CURRENCY_CODES, "cbc:DocumentCurrencyCode"),
        _rule("BR-06", "An Invoice shall contain the Seller name (BT-27).",
              lambda doc: _party_name(doc.supplier), _SUPPLIER),
        _rule("BR-07", "An Invoice shall contain the Buyer name (BT-44).",
              lambda doc: _party_name(doc.customer), _CUSTOMER),
        _rule("BR-08", "An Invoice shall contain the Seller postal address (BG-5).",
              lambda doc: doc.supplier.postal_address is not None,
              f"{_SUPPLIER}/cac:PostalAddress"),
        _rule("BR-09", "The Seller postal address shall contain a Seller country code (BT-40).",
              lambda doc: _country(doc.supplier),
              f"{_SUPPLIER}/cac:PostalAddress/cac:Country/cbc:IdentificationCode"),
        _rule("BR-10", "An Invoice shall contain the Buyer postal address (BG-8).",
              lambda doc: doc.customer.postal_address is not None,
              f"{_CUSTOMER}/cac:PostalAddress"),
        _rule("BR-11", "The Buyer postal address shall contain a Buyer country code (BT-55).",
              lambda doc: _country(doc.customer),
              f"{_CUSTOMER}/cac:PostalAddress/cac:Country/cbc:IdentificationCode"),
        _rule("BR-13", "An Invoice shall have at least one Invoice line (BG-25).",
              lambda doc: len(doc.lines) > 0, "cac:InvoiceLine"),
        _rule("BR-14", "An Invoice shall have the Invoice total amount without VAT (BT-109).",
              lambda doc: doc.monetary_total.tax_exclusive_amount is not None,
              "cac:LegalMonetaryTotal/cbc:TaxExclusiveAmount"),
        _rule("BR-15", "An Invoice shall have the Invoice total amount with VAT (BT-112).",
              lambda doc: doc.monetary_total.tax_inclusive_amount is not None,
              "cac:LegalMonetaryTotal/cbc:TaxInclusiveAmount"),
        _rule("BR-16", "An Invoice shall have the Amount due for payment (BT-115).",
              lambda doc: doc.monetary_total.payable_amount is not None,
              "cac:LegalMonetaryTotal/cbc:PayableAmount"),
        _rule("BR-21", "Each Invoice line shall have an Invoice line identifier (BT-126).",
              _all_lines(lambda line: _has_text(line.id)), "cac:InvoiceLine/cbc:ID"),
        _rule("BR-22", "Each Invoice line shall have an Invoiced quantity (BT-129).",
              _all_lines(lambda line: line.quantity is not None and line.quantity.value is not None),
              "cac:InvoiceLine/cbc:InvoicedQuantity"),
        _rule("BR-23", "An Invoice line shall have an Invoiced quantity unit of measure code (BT-130).",
              _all_lines(lambda line: line.quantity is not None and _has_text(line.quantity.unit_code)),
              "cac:InvoiceLine/cbc:InvoicedQuantity/@unitCode"),
        _rule("BR-24", "Each Invoice line shall have an Invoice line net amount (BT-131).",
              _all_lines(lambda line: line.line_extension_amount is not None),
              "cac:InvoiceLine/cbc:LineExtensionAmount"),
        _rule("BR-25", "Each Invoice line shall contain the Item name (BT-153).",
              _all_lines(lambda line: _has_text(line.item.name)),
              "cac:InvoiceLine/cac:Item/cbc:Name"),
        _rule("BR-26", "Each Invoice line shall contain the Item net price (BT-146).",
              _all_lines(lambda line: line.price is not None and line.price.amount is not None),
              "cac:InvoiceLine/cac:Price/cbc:PriceAmount"),
        _rule("BR-27", "Each Invoice line shall contain the tax category (BT-151).",
              _all_lines(lambda line: line.item.tax_category.id in TAX_CATEGORY_CODES),
              "cac:InvoiceLine/cac:Item/cac:ClassifiedTaxCategory/cbc:ID"),
        _rule("PEPPOL-EN16931-R001", "Customization ID must match Peppol BIS Billing 3.0",
              lambda doc: is_bis_customization(doc.customization_id), "cbc:CustomizationID"),
        _rule("PEPPOL-EN16931-R002", "Profile ID must match Peppol BIS Billing",
              lambda doc: is_bis_profile(doc.profile_id), "cbc:ProfileID"),
        _rule("PEPPOL-EN16931-R003", "Seller electronic address must have valid scheme",
              lambda doc: _endpoint_scheme_ok(doc.supplier),
              f"{_SUPPLIER}/cbc:EndpointID/@schemeID"),
        _rule("PEPPOL-EN16931-R004", "Buyer electronic address must have valid scheme",
              lambda doc: _endpoint_scheme_ok(doc.customer),
              f"{_CUSTOMER}/cbc:EndpointID/@schemeID"),
    ),
)


def _shared(rule_id: str, description: str, location: Optional[str] = None) -> Rule:
    rule = INVOICE_RULES.get(rule_id)
    if rule is None:
        raise RuleSetError(f"Unknown shared rule id {rule_id!r}")
    return replace(rule, description=description, location=location or rule.location)


def _references_invoice(doc: CreditNote) -> bool:
    reference = doc.original_invoice_reference
    return reference is not None and _has_text(reference.invoice_id)


CREDIT_NOTE_RULES = RuleSet(
    name="bis-billing-3.0-credit-note",
    profile=PROFILE_LABEL,
    rules=(
        _shared("BR-01", "A Credit Note shall have a Credit Note number (BT-1)."),
        _shared("BR-02", "A Credit Note shall have an issue date (BT-2)."),
        _rule("BR-04", "A Credit Note shall have a Credit Note type code (BT-3).",
              lambda doc: doc.type_code in CREDIT_NOTE_TYPE_CODES, "cbc:CreditNoteTypeCode"),
        _shared("BR-05", "A Credit Note shall have a currency code (BT-5)."),
        _shared("BR-06", "A Credit Note shall contain the Seller name (BT-27)."),
        _shared("BR-07", "A Credit Note shall contain the Buyer name (BT-44)."),
        _shared("BR-13", "A Credit Note shall have at least one Credit Note line (BG-25).",
                "cac:CreditNoteLine"),
        _rule("BR-55", "A Credit Note shall contain a reference to the invoiced document (BG-3).",
              _references_invoice, "cac:BillingReference/cac:InvoiceDocumentReference",
              severity=Severity.WARNING),
        _shared("PEPPOL-EN16931-R001", "Customization ID must match Peppol BIS Billing 3.0"),
        _shared("PEPPOL-EN16931-R002", "Profile ID must match Peppol BIS Billing"),
    ),
)


def rule_set_for(kind: str) -> RuleSet:
    ensure_kind(kind)
    return CREDIT_NOTE_RULES if kind == CREDIT_NOTE_KIND else INVOICE_RULES


def validate_invoice(document: Document, **kwargs) -> ValidationResult:
    return evaluate(document, INVOICE_RULES, **kwargs)


def validate_credit_note(document: Document, **kwargs) -> ValidationResult:
    return evaluate(document, CREDIT_NOTE_RULES, **kwargs)


def validate_document(document: Document, **kwargs) -> ValidationResult:
    return evaluate(document, rule_set_for(document.document_kind), **kwargs)
