"""Dokumente aus JSON/YAML-Payloads laden (camelCase-Schlüssel, pydantic-validiert).

Beträge dürfen als Zahl/String angegeben werden und übernehmen dann die
Dokumentwährung, oder als Objekt ``{"value": ..., "currency": ...}``.
Identifikatoren akzeptieren einen String oder ``{"value", "schemeId"}``.
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any, ClassVar, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from . import dto
from .dto import CREDIT_NOTE_KIND, INVOICE_KIND, Document, UnknownDocumentKindError, ensure_kind


class DocumentLoadError(ValueError):
    pass


def _convert(value: Any, currency: str) -> Any:
    if isinstance(value, _Schema):
        return value.to_dto(currency)
    if isinstance(value, list):
        return tuple(_convert(item, currency) for item in value)
    return value


def _scalar_amount(raw: Any) -> Any:
    if isinstance(raw, (int, float, str, Decimal)) and not isinstance(raw, bool):
        return {"value": raw}
    return raw


def _plain_identifier(raw: Any) -> Any:
    if isinstance(raw, str):
        return {"value": raw}
    return raw


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    dto_class: ClassVar[type]

    def dto_fields(self, currency: str) -> Dict[str, Any]:
        # nur gesetzte Felder, damit die Defaults der Dataclasses greifen
        return {name: _convert(getattr(self, name), currency) for name in self.model_fields_set}

    def to_dto(self, currency: str) -> Any:
        return self.dto_class(**self.dto_fields(currency))


class AmountIn(_Schema):
    value: Decimal
    currency: Optional[str] = Field(None, description="ISO 4217; default: document currency")

    def to_dto(self, currency: str) -> dto.Amount:
        return dto.Amount(self.value, self.currency or currency)


class QuantityIn(_Schema):
    dto_class = dto.Quantity

    value: Decimal
    unit_code: str = Field("C62", description="UN/ECE Rec 20 unit code")

    def to_dto(self, currency: str) -> dto.Quantity:
        return dto.Quantity(self.value, self.unit_code)


class IdentifierIn(_Schema):
    dto_class = dto.Identifier

    value: str
    scheme_id: Optional[str] = None


Money = Annotated[AmountIn, BeforeValidator(_scalar_amount)]
Ident = Annotated[IdentifierIn, BeforeValidator(_plain_identifier)]


class AddressIn(_Schema):
    dto_class = dto.Address

    country_code: str
    street_name: Optional[str] = None
    additional_street_name: Optional[str] = None
    city_name: Optional[str] = None
    postal_zone: Optional[str] = None
    country_subentity: Optional[str] = None
    address_lines: List[str] = Field(default_factory=list)


class ContactIn(_Schema):
    dto_class = dto.Contact

    name: Optional[str] = None
    telephone: Optional[str] = None
    electronic_mail: Optional[str] = None


class PartyTaxSchemeIn(_Schema):
    dto_class = dto.PartyTaxScheme

    tax_scheme_id: str = "VAT"
    company_id: Optional[str] = None


class PartyLegalEntityIn(_Schema):
    dto_class = dto.PartyLegalEntity

    registration_name: str
    company_id: Optional[Ident] = None
    company_legal_form: Optional[str] = None


class PartyIn(_Schema):
    dto_class = dto.Party

    endpoint_id: Ident
    names: List[str] = Field(default_factory=list)
    identifications: List[Ident] = Field(default_factory=list)
    postal_address: Optional[AddressIn] = None
    tax_schemes: List[PartyTaxSchemeIn] = Field(default_factory=list)
    legal_entities: List[PartyLegalEntityIn] = Field(default_factory=list)
    contact: Optional[ContactIn] = None


class TaxCategoryIn(_Schema):
    dto_class = dto.TaxCategory

    id: str = Field(..., description="UNCL5305 tax category code")
    percent: Optional[Decimal] = None
    exemption_reason_code: Optional[str] = None
    exemption_reason: Optional[str] = None
    tax_scheme_id: str = "VAT"


class TaxSubtotalIn(_Schema):
    dto_class = dto.TaxSubtotal

    taxable_amount: Money
    tax_amount: Money
    category: TaxCategoryIn


class TaxTotalIn(_Schema):
    dto_class = dto.TaxTotal

    tax_amount: Money
    subtotals: List[TaxSubtotalIn] = Field(default_factory=list)


class MonetaryTotalIn(_Schema):
    dto_class = dto.MonetaryTotal

    line_extension_amount: Money
    tax_exclusive_amount: Money
    tax_inclusive_amount: Money
    payable_amount: Money
    allowance_total_amount: Optional[Money] = None
    charge_total_amount: Optional[Money] = None
    prepaid_amount: Optional[Money] = None
    payable_rounding_amount: Optional[Money] = None


class AllowanceChargeIn(_Schema):
    dto_class = dto.AllowanceCharge

    charge_indicator: bool
    amount: Money
    reason_code: Optional[str] = None
    reason: Optional[str] = None
    multiplier_factor: Optional[Decimal] = None
    base_amount: Optional[Money] = None
    tax_category: Optional[TaxCategoryIn] = None


class PeriodIn(_Schema):
    dto_class = dto.Period

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description_code: Optional[str] = None


class EmbeddedObjectIn(_Schema):
    dto_class = dto.EmbeddedObject

    mime_code: str
    filename: str
    content: str = Field(..., description="Base64-encoded attachment")


class AttachmentIn(_Schema):
    dto_class = dto.Attachment

    embedded: Optional[EmbeddedObjectIn] = None
    external_uri: Optional[str] = None


class DocumentReferenceIn(_Schema):
    dto_class = dto.DocumentReference

    id: Ident
    issue_date: Optional[date] = None
    document_type_code: Optional[str] = None
    descriptions: List[str] = Field(default_factory=list)
    attachment: Optional[AttachmentIn] = None


class BillingReferenceIn(_Schema):
    dto_class = dto.BillingReference

    invoice_id: Optional[str] = None
    invoice_issue_date: Optional[date] = None
    credit_note_id: Optional[str] = None
    credit_note_issue_date: Optional[date] = None


class OrderReferenceIn(_Schema):
    dto_class = dto.OrderReference

    id: str
    sales_order_id: Optional[str] = None


class FinancialAccountIn(_Schema):
    dto_class = dto.FinancialAccount

    id: str = Field(..., description="IBAN or other account identifier")
    name: Optional[str] = None
    branch_id: Optional[str] = None
    branch_name: Optional[str] = None


class CardAccountIn(_Schema):
    dto_class = dto.CardAccount

    primary_account_number_id: str
    network_id: str
    holder_name: Optional[str] = None


class PaymentMandateIn(_Schema):
    dto_class = dto.PaymentMandate

    id: str
    payer_account_id: Optional[str] = None


class PaymentMeansIn(_Schema):
    dto_class = dto.PaymentMeans

    code: str = Field(..., description="UNCL4461 payment means code")
    code_name: Optional[str] = None
    due_date: Optional[date] = None
    payment_ids: List[str] = Field(default_factory=list)
    payee_account: Optional[FinancialAccountIn] = None
    card_account: Optional[CardAccountIn] = None
    mandate: Optional[PaymentMandateIn] = None


class DeliveryIn(_Schema):
    dto_class = dto.Delivery

    actual_delivery_date: Optional[date] = None
    location_id: Optional[Ident] = None
    location_address: Optional[AddressIn] = None
    party_names: List[str] = Field(default_factory=list)


class ItemClassificationIn(_Schema):
    dto_class = dto.ItemClassification

    code: str
    list_id: str


class ItemPropertyIn(_Schema):
    dto_class = dto.ItemProperty

    name: str
    value: str


class ItemIn(_Schema):
    dto_class = dto.Item

    name: str
    tax_category: TaxCategoryIn
    descriptions: List[str] = Field(default_factory=list)
    buyers_item_id: Optional[str] = None
    sellers_item_id: Optional[str] = None
    standard_item_id: Optional[Ident] = None
    origin_country: Optional[str] = None
    classifications: List[ItemClassificationIn] = Field(default_factory=list)
    properties: List[ItemPropertyIn] = Field(default_factory=list)


class PriceIn(_Schema):
    dto_class = dto.Price

    amount: Money
    base_quantity: Optional[QuantityIn] = None
    allowance_charge: Optional[AllowanceChargeIn] = None


class DocumentLineIn(_Schema):
    dto_class = dto.DocumentLine

    id: str
    quantity: QuantityIn
    line_extension_amount: Money
    item: ItemIn
    price: PriceIn
    notes: List[str] = Field(default_factory=list)
    accounting_cost: Optional[str] = None
    period: Optional[PeriodIn] = None
    order_line_id: Optional[str] = None
    document_references: List[DocumentReferenceIn] = Field(default_factory=list)
    allowance_charges: List[AllowanceChargeIn] = Field(default_factory=list)


class DocumentIn(_Schema):
    """Kopf eines Invoice/CreditNote-Payloads; ``kind`` wählt die Dokumentart."""

    kind: str = Field(INVOICE_KIND, description="invoice | creditNote")
    type_code: Optional[str] = None
    due_date: Optional[date] = None

    id: str
    issue_date: date
    currency_code: str = Field(..., description="ISO 4217 document currency")
    supplier: PartyIn
    customer: PartyIn
    monetary_total: MonetaryTotalIn
    tax_totals: List[TaxTotalIn] = Field(default_factory=list)
    lines: List[DocumentLineIn] = Field(default_factory=list)
    customization_id: Optional[str] = None
    profile_id: Optional[str] = None
    ubl_version_id: Optional[str] = None
    notes: List[str] = Field(default_factory=list)
    tax_point_date: Optional[date] = None
    tax_currency_code: Optional[str] = None
    accounting_cost: Optional[str] = None
    buyer_reference: Optional[str] = None
    invoice_period: Optional[PeriodIn] = None
    order_reference: Optional[OrderReferenceIn] = None
    billing_references: List[BillingReferenceIn] = Field(default_factory=list)
    despatch_reference: Optional[DocumentReferenceIn] = None
    receipt_reference: Optional[DocumentReferenceIn] = None
    originator_reference: Optional[DocumentReferenceIn] = None
    contract_reference: Optional[DocumentReferenceIn] = None
    additional_references: List[DocumentReferenceIn] = Field(default_factory=list)
    project_reference: Optional[str] = None
    payee_party: Optional[PartyIn] = None
    tax_representative: Optional[PartyIn] = None
    deliveries: List[DeliveryIn] = Field(default_factory=list)
    payment_means: List[PaymentMeansIn] = Field(default_factory=list)
    payment_terms: List[str] = Field(default_factory=list)
    allowance_charges: List[AllowanceChargeIn] = Field(default_factory=list)

    def to_document(self) -> Document:
        try:
            kind = ensure_kind(self.kind)
        except UnknownDocumentKindError as exc:
            raise DocumentLoadError(str(exc)) from exc
        fields = self.dto_fields(self.currency_code)
        fields.pop("kind", None)
        if kind == CREDIT_NOTE_KIND:
            if self.due_date is not None:
                raise DocumentLoadError("dueDate is not supported on credit notes")
            return dto.CreditNote(**fields)
        return dto.Invoice(**fields)


def load_document(data: Mapping[str, Any]) -> Document:
    try:
        schema = DocumentIn.model_validate(dict(data))
    except ValidationError as exc:
        raise DocumentLoadError(f"invalid document payload: {exc}") from exc
    return schema.to_document()


def load_document_file(path: Path | str) -> Document:
    source = Path(path)
    text = source.read_text(encoding="utf-8")
    suffix = source.suffix.lower()
    if suffix == ".json":
        data = json.loads(text)
    elif suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    else:
        raise DocumentLoadError(f"unsupported document format: {source.suffix or source.name}")
    if not isinstance(data, Mapping):
        raise DocumentLoadError("document payload must be a mapping")
    return load_document(data)
