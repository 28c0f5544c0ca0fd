"""Datentransferobjekte für Peppol BIS Billing 3.0 (UBL 2.1 Invoice / CreditNote).

Die Strukturen bilden das EN 16931 Datenmodell so ab, wie es in UBL serialisiert
wird. Beträge sind ``Decimal`` mit Währung, Mengen ``Decimal`` mit Einheitencode.
Dokumente sind unveränderlich; Änderungen (z. B. das XRechnung-Overlay) erzeugen
über ``dataclasses.replace`` ein neues Objekt.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple, Union


DecimalLike = Union[Decimal, str, int, float]

BIS_BILLING_CUSTOMIZATION_ID = (
    "urn:cen.eu:en16931:2017#compliant#urn:fdc:peppol.eu:2017:poacc:billing:3.0"
)
BIS_BILLING_PROFILE_ID = "urn:fdc:peppol.eu:2017:poacc:billing:01:1.0"
UBL_VERSION_ID = "2.1"

INVOICE_KIND = "invoice"
CREDIT_NOTE_KIND = "creditNote"
DOCUMENT_KINDS = (INVOICE_KIND, CREDIT_NOTE_KIND)


class UnknownDocumentKindError(ValueError):
    pass


def to_decimal(value: DecimalLike) -> Decimal:
    """Konvertiere Eingaben deterministisch in ``Decimal``.

    Floats werden zunächst in Strings umgewandelt, um binäre Rundungsfehler zu
    vermeiden.
    """

    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a valid decimal input")
    if isinstance(value, (int, str, float)):
        return Decimal(str(value))
    raise TypeError(f"Unsupported decimal input: {type(value)!r}")


def quantize_money(amount: DecimalLike) -> Decimal:
    """Rundet Beträge auf zwei Nachkommastellen (ROUND_HALF_UP)."""

    return to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class Amount:
    value: Decimal
    currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_decimal(self.value))


@dataclass(frozen=True, slots=True)
class Quantity:
    value: Decimal
    unit_code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", to_decimal(self.value))


@dataclass(frozen=True, slots=True)
class Identifier:
    value: str
    scheme_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Address:
    country_code: str
    street_name: Optional[str] = None
    additional_street_name: Optional[str] = None
    city_name: Optional[str] = None
    postal_zone: Optional[str] = None
    country_subentity: Optional[str] = None
    address_lines: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Contact:
    name: Optional[str] = None
    telephone: Optional[str] = None
    electronic_mail: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PartyTaxScheme:
    tax_scheme_id: str = "VAT"
    company_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PartyLegalEntity:
    registration_name: str
    company_id: Optional[Identifier] = None
    company_legal_form: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Party:
    endpoint_id: Identifier
    names: Tuple[str, ...] = ()
    identifications: Tuple[Identifier, ...] = ()
    postal_address: Optional[Address] = None
    tax_schemes: Tuple[PartyTaxScheme, ...] = ()
    legal_entities: Tuple[PartyLegalEntity, ...] = ()
    contact: Optional[Contact] = None

    @property
    def display_name(self) -> Optional[str]:
        if self.legal_entities:
            return self.legal_entities[0].registration_name
        if self.names:
            return self.names[0]
        return None


@dataclass(frozen=True, slots=True)
class TaxCategory:
    id: str
    percent: Optional[Decimal] = None
    exemption_reason_code: Optional[str] = None
    exemption_reason: Optional[str] = None
    tax_scheme_id: str = "VAT"

    def __post_init__(self) -> None:
        if self.percent is not None:
            object.__setattr__(self, "percent", to_decimal(self.percent))


@dataclass(frozen=True, slots=True)
class TaxSubtotal:
    taxable_amount: Amount
    tax_amount: Amount
    category: TaxCategory


@dataclass(frozen=True, slots=True)
class TaxTotal:
    tax_amount: Amount
    subtotals: Tuple[TaxSubtotal, ...] = ()


@dataclass(frozen=True, slots=True)
class MonetaryTotal:
    line_extension_amount: Amount
    tax_exclusive_amount: Amount
    tax_inclusive_amount: Amount
    payable_amount: Amount
    allowance_total_amount: Optional[Amount] = None
    charge_total_amount: Optional[Amount] = None
    prepaid_amount: Optional[Amount] = None
    payable_rounding_amount: Optional[Amount] = None


@dataclass(frozen=True, slots=True)
class AllowanceCharge:
    charge_indicator: bool
    amount: Amount
    reason_code: Optional[str] = None
    reason: Optional[str] = None
    multiplier_factor: Optional[Decimal] = None
    base_amount: Optional[Amount] = None
    tax_category: Optional[TaxCategory] = None

    def __post_init__(self) -> None:
        if self.multiplier_factor is not None:
            object.__setattr__(self, "multiplier_factor", to_decimal(self.multiplier_factor))


@dataclass(frozen=True, slots=True)
class Period:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description_code: Optional[str] = None


@dataclass(frozen=True, slots=True)
class EmbeddedObject:
    mime_code: str
    filename: str
    content: str  # Base64


@dataclass(frozen=True, slots=True)
class Attachment:
    embedded: Optional[EmbeddedObject] = None
    external_uri: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DocumentReference:
    id: Identifier
    issue_date: Optional[date] = None
    document_type_code: Optional[str] = None
    descriptions: Tuple[str, ...] = ()
    attachment: Optional[Attachment] = None


@dataclass(frozen=True, slots=True)
class BillingReference:
    invoice_id: Optional[str] = None
    invoice_issue_date: Optional[date] = None
    credit_note_id: Optional[str] = None
    credit_note_issue_date: Optional[date] = None


@dataclass(frozen=True, slots=True)
class OrderReference:
    id: str
    sales_order_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class FinancialAccount:
    id: str
    name: Optional[str] = None
    branch_id: Optional[str] = None
    branch_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CardAccount:
    primary_account_number_id: str
    network_id: str
    holder_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PaymentMandate:
    id: str
    payer_account_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PaymentMeans:
    code: str
    code_name: Optional[str] = None
    due_date: Optional[date] = None
    payment_ids: Tuple[str, ...] = ()
    payee_account: Optional[FinancialAccount] = None
    card_account: Optional[CardAccount] = None
    mandate: Optional[PaymentMandate] = None


@dataclass(frozen=True, slots=True)
class Delivery:
    actual_delivery_date: Optional[date] = None
    location_id: Optional[Identifier] = None
    location_address: Optional[Address] = None
    party_names: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ItemClassification:
    code: str
    list_id: str


@dataclass(frozen=True, slots=True)
class ItemProperty:
    name: str
    value: str


@dataclass(frozen=True, slots=True)
class Item:
    name: str
    tax_category: TaxCategory
    descriptions: Tuple[str, ...] = ()
    buyers_item_id: Optional[str] = None
    sellers_item_id: Optional[str] = None
    standard_item_id: Optional[Identifier] = None
    origin_country: Optional[str] = None
    classifications: Tuple[ItemClassification, ...] = ()
    properties: Tuple[ItemProperty, ...] = ()


@dataclass(frozen=True, slots=True)
class Price:
    amount: Amount
    base_quantity: Optional[Quantity] = None
    allowance_charge: Optional[AllowanceCharge] = None


@dataclass(frozen=True, slots=True)
class DocumentLine:
    id: str
    quantity: Quantity
    line_extension_amount: Amount
    item: Item
    price: Price
    notes: Tuple[str, ...] = ()
    accounting_cost: Optional[str] = None
    period: Optional[Period] = None
    order_line_id: Optional[str] = None
    document_references: Tuple[DocumentReference, ...] = ()
    allowance_charges: Tuple[AllowanceCharge, ...] = ()


@dataclass(frozen=True, slots=True)
class BusinessDocument:
    """Gemeinsame Kopf-, Parteien- und Summenfelder von Invoice und CreditNote."""

    id: str
    issue_date: date
    currency_code: str
    supplier: Party
    customer: Party
    monetary_total: MonetaryTotal
    tax_totals: Tuple[TaxTotal, ...] = ()
    lines: Tuple[DocumentLine, ...] = ()
    customization_id: str = BIS_BILLING_CUSTOMIZATION_ID
    profile_id: str = BIS_BILLING_PROFILE_ID
    ubl_version_id: Optional[str] = UBL_VERSION_ID
    notes: Tuple[str, ...] = ()
    tax_point_date: Optional[date] = None
    tax_currency_code: Optional[str] = None
    accounting_cost: Optional[str] = None
    buyer_reference: Optional[str] = None
    invoice_period: Optional[Period] = None
    order_reference: Optional[OrderReference] = None
    billing_references: Tuple[BillingReference, ...] = ()
    despatch_reference: Optional[DocumentReference] = None
    receipt_reference: Optional[DocumentReference] = None
    originator_reference: Optional[DocumentReference] = None
    contract_reference: Optional[DocumentReference] = None
    additional_references: Tuple[DocumentReference, ...] = ()
    project_reference: Optional[str] = None
    payee_party: Optional[Party] = None
    tax_representative: Optional[Party] = None
    deliveries: Tuple[Delivery, ...] = ()
    payment_means: Tuple[PaymentMeans, ...] = ()
    payment_terms: Tuple[str, ...] = ()
    allowance_charges: Tuple[AllowanceCharge, ...] = ()

    document_kind = ""

    @property
    def tax_amount(self) -> Optional[Amount]:
        if not self.tax_totals:
            return None
        return self.tax_totals[0].tax_amount

    def line_categories(self) -> Tuple[TaxCategory, ...]:
        return tuple(line.item.tax_category for line in self.lines)


@dataclass(frozen=True, slots=True)
class Invoice(BusinessDocument):
    due_date: Optional[date] = None
    type_code: str = "380"

    document_kind = INVOICE_KIND


@dataclass(frozen=True, slots=True)
class CreditNote(BusinessDocument):
    type_code: str = "381"

    document_kind = CREDIT_NOTE_KIND

    @property
    def original_invoice_reference(self) -> Optional[BillingReference]:
        for reference in self.billing_references:
            if reference.invoice_id:
                return reference
        return None


Document = Union[Invoice, CreditNote]


def ensure_kind(kind: str) -> str:
    if kind not in DOCUMENT_KINDS:
        raise UnknownDocumentKindError(f"Unknown document kind: {kind!r}")
    return kind


def money(value: DecimalLike, currency: str) -> Amount:
    """Kurzform für einen auf zwei Stellen gerundeten Betrag."""

    return Amount(quantize_money(value), currency)
