"""UBL 2.1 Bausteine, die Invoice- und CreditNote-Generator gemeinsam nutzen.

Die Reihenfolge der Elemente folgt dem UBL-Schema. Optionale Blöcke werden
komplett weggelassen, wenn sie nicht gesetzt sind.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..dto import (
    Address,
    AllowanceCharge,
    BillingReference,
    Delivery,
    Document,
    DocumentLine,
    DocumentReference,
    Identifier,
    Item,
    Party,
    PaymentMeans,
    Period,
    Price,
    TaxCategory,
    TaxTotal,
)
from ._xml import XmlWriter

CBC_NS = "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"
CAC_NS = "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"


@dataclass(frozen=True)
class DocumentLayout:
    root: str
    namespace: str
    type_code_element: str
    line_element: str
    quantity_element: str


def _identifier(w: XmlWriter, tag: str, identifier: Identifier | None) -> None:
    if identifier is None:
        return
    w.element(tag, identifier.value, {"schemeID": identifier.scheme_id})


def render_period(w: XmlWriter, period: Period | None) -> None:
    if period is None:
        return
    with w.block("cac:InvoicePeriod"):
        w.element("cbc:StartDate", period.start_date)
        w.element("cbc:EndDate", period.end_date)
        w.element("cbc:DescriptionCode", period.description_code)


def render_billing_reference(w: XmlWriter, ref: BillingReference) -> None:
    with w.block("cac:BillingReference"):
        if ref.invoice_id:
            with w.block("cac:InvoiceDocumentReference"):
                w.element("cbc:ID", ref.invoice_id)
                w.element("cbc:IssueDate", ref.invoice_issue_date)
        if ref.credit_note_id:
            with w.block("cac:CreditNoteDocumentReference"):
                w.element("cbc:ID", ref.credit_note_id)
                w.element("cbc:IssueDate", ref.credit_note_issue_date)


def render_document_reference(w: XmlWriter, element: str, ref: DocumentReference | None) -> None:
    if ref is None:
        return
    with w.block(f"cac:{element}"):
        _identifier(w, "cbc:ID", ref.id)
        w.element("cbc:IssueDate", ref.issue_date)
        w.element("cbc:DocumentTypeCode", ref.document_type_code)
        w.elements("cbc:DocumentDescription", ref.descriptions)
        if ref.attachment is not None:
            with w.block("cac:Attachment"):
                embedded = ref.attachment.embedded
                if embedded is not None:
                    w.element(
                        "cbc:EmbeddedDocumentBinaryObject",
                        embedded.content,
                        {"mimeCode": embedded.mime_code, "filename": embedded.filename},
                    )
                if ref.attachment.external_uri:
                    with w.block("cac:ExternalReference"):
                        w.element("cbc:URI", ref.attachment.external_uri)


def render_address(w: XmlWriter, address: Address | None, element: str = "PostalAddress") -> None:
    if address is None:
        return
    with w.block(f"cac:{element}"):
        w.element("cbc:StreetName", address.street_name)
        w.element("cbc:AdditionalStreetName", address.additional_street_name)
        w.element("cbc:CityName", address.city_name)
        w.element("cbc:PostalZone", address.postal_zone)
        w.element("cbc:CountrySubentity", address.country_subentity)
        for line in address.address_lines:
            with w.block("cac:AddressLine"):
                w.element("cbc:Line", line)
        with w.block("cac:Country"):
            w.element("cbc:IdentificationCode", address.country_code)


def render_party_content(w: XmlWriter, party: Party) -> None:
    _identifier(w, "cbc:EndpointID", party.endpoint_id)
    for identification in party.identifications:
        with w.block("cac:PartyIdentification"):
            _identifier(w, "cbc:ID", identification)
    for name in party.names:
        with w.block("cac:PartyName"):
            w.element("cbc:Name", name)
    render_address(w, party.postal_address)
    for tax_scheme in party.tax_schemes:
        with w.block("cac:PartyTaxScheme"):
            w.element("cbc:CompanyID", tax_scheme.company_id)
            with w.block("cac:TaxScheme"):
                w.element("cbc:ID", tax_scheme.tax_scheme_id)
    for legal in party.legal_entities:
        with w.block("cac:PartyLegalEntity"):
            w.element("cbc:RegistrationName", legal.registration_name)
            _identifier(w, "cbc:CompanyID", legal.company_id)
            w.element("cbc:CompanyLegalForm", legal.company_legal_form)
    contact = party.contact
    if contact is not None:
        with w.block("cac:Contact"):
            w.element("cbc:Name", contact.name)
            w.element("cbc:Telephone", contact.telephone)
            w.element("cbc:ElectronicMail", contact.electronic_mail)


def render_party(w: XmlWriter, wrapper: str, party: Party | None, *, nested: bool = True) -> None:
    if party is None:
        return
    with w.block(f"cac:{wrapper}"):
        if nested:
            with w.block("cac:Party"):
                render_party_content(w, party)
        else:
            render_party_content(w, party)


def render_delivery(w: XmlWriter, delivery: Delivery) -> None:
    with w.block("cac:Delivery"):
        w.element("cbc:ActualDeliveryDate", delivery.actual_delivery_date)
        if delivery.location_id is not None or delivery.location_address is not None:
            with w.block("cac:DeliveryLocation"):
                _identifier(w, "cbc:ID", delivery.location_id)
                render_address(w, delivery.location_address, element="Address")
        if delivery.party_names:
            with w.block("cac:DeliveryParty"):
                for name in delivery.party_names:
                    with w.block("cac:PartyName"):
                        w.element("cbc:Name", name)


def render_payment_means(w: XmlWriter, means: PaymentMeans) -> None:
    with w.block("cac:PaymentMeans"):
        w.element("cbc:PaymentMeansCode", means.code, {"name": means.code_name})
        w.element("cbc:PaymentDueDate", means.due_date)
        w.elements("cbc:PaymentID", means.payment_ids)
        card = means.card_account
        if card is not None:
            with w.block("cac:CardAccount"):
                w.element("cbc:PrimaryAccountNumberID", card.primary_account_number_id)
                w.element("cbc:NetworkID", card.network_id)
                w.element("cbc:HolderName", card.holder_name)
        account = means.payee_account
        if account is not None:
            with w.block("cac:PayeeFinancialAccount"):
                w.element("cbc:ID", account.id)
                w.element("cbc:Name", account.name)
                if account.branch_id:
                    with w.block("cac:FinancialInstitutionBranch"):
                        w.element("cbc:ID", account.branch_id)
                        w.element("cbc:Name", account.branch_name)
        mandate = means.mandate
        if mandate is not None:
            with w.block("cac:PaymentMandate"):
                w.element("cbc:ID", mandate.id)
                if mandate.payer_account_id:
                    with w.block("cac:PayerFinancialAccount"):
                        w.element("cbc:ID", mandate.payer_account_id)


def render_tax_category(w: XmlWriter, category: TaxCategory, element: str = "TaxCategory") -> None:
    with w.block(f"cac:{element}"):
        w.element("cbc:ID", category.id)
        w.element("cbc:Percent", category.percent)
        if element == "TaxCategory":
            w.element("cbc:TaxExemptionReasonCode", category.exemption_reason_code)
            w.element("cbc:TaxExemptionReason", category.exemption_reason)
        with w.block("cac:TaxScheme"):
            w.element("cbc:ID", category.tax_scheme_id)


def render_allowance_charge(w: XmlWriter, charge: AllowanceCharge, *, line_level: bool = False) -> None:
    with w.block("cac:AllowanceCharge"):
        w.element("cbc:ChargeIndicator", charge.charge_indicator)
        w.element("cbc:AllowanceChargeReasonCode", charge.reason_code)
        w.element("cbc:AllowanceChargeReason", charge.reason)
        w.element("cbc:MultiplierFactorNumeric", charge.multiplier_factor)
        w.amount("cbc:Amount", charge.amount)
        w.amount("cbc:BaseAmount", charge.base_amount)
        if charge.tax_category is not None and not line_level:
            render_tax_category(w, charge.tax_category)


def render_tax_total(w: XmlWriter, total: TaxTotal) -> None:
    with w.block("cac:TaxTotal"):
        w.amount("cbc:TaxAmount", total.tax_amount)
        for subtotal in total.subtotals:
            with w.block("cac:TaxSubtotal"):
                w.amount("cbc:TaxableAmount", subtotal.taxable_amount)
                w.amount("cbc:TaxAmount", subtotal.tax_amount)
                render_tax_category(w, subtotal.category)


def render_monetary_total(w: XmlWriter, document: Document) -> None:
    totals = document.monetary_total
    with w.block("cac:LegalMonetaryTotal"):
        w.amount("cbc:LineExtensionAmount", totals.line_extension_amount)
        w.amount("cbc:TaxExclusiveAmount", totals.tax_exclusive_amount)
        w.amount("cbc:TaxInclusiveAmount", totals.tax_inclusive_amount)
        w.amount("cbc:AllowanceTotalAmount", totals.allowance_total_amount)
        w.amount("cbc:ChargeTotalAmount", totals.charge_total_amount)
        w.amount("cbc:PrepaidAmount", totals.prepaid_amount)
        w.amount("cbc:PayableRoundingAmount", totals.payable_rounding_amount)
        w.amount("cbc:PayableAmount", totals.payable_amount)


def render_item(w: XmlWriter, item: Item) -> None:
    with w.block("cac:Item"):
        w.elements("cbc:Description", item.descriptions)
        w.element("cbc:Name", item.name)
        if item.buyers_item_id:
            with w.block("cac:BuyersItemIdentification"):
                w.element("cbc:ID", item.buyers_item_id)
        if item.sellers_item_id:
            with w.block("cac:SellersItemIdentification"):
                w.element("cbc:ID", item.sellers_item_id)
        if item.standard_item_id is not None:
            with w.block("cac:StandardItemIdentification"):
                _identifier(w, "cbc:ID", item.standard_item_id)
        if item.origin_country:
            with w.block("cac:OriginCountry"):
                w.element("cbc:IdentificationCode", item.origin_country)
        for classification in item.classifications:
            with w.block("cac:CommodityClassification"):
                w.element(
                    "cbc:ItemClassificationCode",
                    classification.code,
                    {"listID": classification.list_id},
                )
        render_tax_category(w, item.tax_category, element="ClassifiedTaxCategory")
        for prop in item.properties:
            with w.block("cac:AdditionalItemProperty"):
                w.element("cbc:Name", prop.name)
                w.element("cbc:Value", prop.value)


def render_price(w: XmlWriter, price: Price) -> None:
    with w.block("cac:Price"):
        w.amount("cbc:PriceAmount", price.amount)
        w.quantity("cbc:BaseQuantity", price.base_quantity)
        if price.allowance_charge is not None:
            render_allowance_charge(w, price.allowance_charge, line_level=True)


def render_line(w: XmlWriter, line: DocumentLine, layout: DocumentLayout) -> None:
    with w.block(f"cac:{layout.line_element}"):
        w.element("cbc:ID", line.id)
        w.elements("cbc:Note", line.notes)
        w.quantity(f"cbc:{layout.quantity_element}", line.quantity)
        w.amount("cbc:LineExtensionAmount", line.line_extension_amount)
        w.element("cbc:AccountingCost", line.accounting_cost)
        render_period(w, line.period)
        if line.order_line_id:
            with w.block("cac:OrderLineReference"):
                w.element("cbc:LineID", line.order_line_id)
        for ref in line.document_references:
            render_document_reference(w, "DocumentReference", ref)
        for charge in line.allowance_charges:
            render_allowance_charge(w, charge, line_level=True)
        render_item(w, line.item)
        render_price(w, line.price)


def render(document: Document, layout: DocumentLayout, *, due_date=None) -> str:
    w = XmlWriter()
    w.raw('<?xml version="1.0" encoding="UTF-8"?>')
    with w.block(
        layout.root,
        {"xmlns": layout.namespace, "xmlns:cac": CAC_NS, "xmlns:cbc": CBC_NS},
    ):
        w.element("cbc:CustomizationID", document.customization_id)
        w.element("cbc:ProfileID", document.profile_id)
        w.element("cbc:ID", document.id)
        w.element("cbc:IssueDate", document.issue_date)
        w.element("cbc:DueDate", due_date)
        w.element(f"cbc:{layout.type_code_element}", document.type_code)
        w.elements("cbc:Note", document.notes)
        w.element("cbc:TaxPointDate", document.tax_point_date)
        w.element("cbc:DocumentCurrencyCode", document.currency_code)
        w.element("cbc:TaxCurrencyCode", document.tax_currency_code)
        w.element("cbc:AccountingCost", document.accounting_cost)
        w.element("cbc:BuyerReference", document.buyer_reference)
        render_period(w, document.invoice_period)
        if document.order_reference is not None:
            with w.block("cac:OrderReference"):
                w.element("cbc:ID", document.order_reference.id)
                w.element("cbc:SalesOrderID", document.order_reference.sales_order_id)
        for ref in document.billing_references:
            render_billing_reference(w, ref)
        render_document_reference(w, "DespatchDocumentReference", document.despatch_reference)
        render_document_reference(w, "ReceiptDocumentReference", document.receipt_reference)
        render_document_reference(w, "OriginatorDocumentReference", document.originator_reference)
        render_document_reference(w, "ContractDocumentReference", document.contract_reference)
        for ref in document.additional_references:
            render_document_reference(w, "AdditionalDocumentReference", ref)
        if document.project_reference:
            with w.block("cac:ProjectReference"):
                w.element("cbc:ID", document.project_reference)

        render_party(w, "AccountingSupplierParty", document.supplier)
        render_party(w, "AccountingCustomerParty", document.customer)
        render_party(w, "PayeeParty", document.payee_party, nested=False)
        render_party(w, "TaxRepresentativeParty", document.tax_representative, nested=False)

        for delivery in document.deliveries:
            render_delivery(w, delivery)
        for means in document.payment_means:
            render_payment_means(w, means)
        if document.payment_terms:
            with w.block("cac:PaymentTerms"):
                w.elements("cbc:Note", document.payment_terms)
        for charge in document.allowance_charges:
            render_allowance_charge(w, charge)
        for total in document.tax_totals:
            render_tax_total(w, total)
        render_monetary_total(w, document)

        for line in document.lines:
            render_line(w, line, layout)
    return w.getvalue()
