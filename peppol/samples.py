"""Deterministische Beispieldokumente für Tests & CLI."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Callable, Dict

from .dto import (
    Address,
    BillingReference,
    Contact,
    CreditNote,
    Delivery,
    DocumentLine,
    FinancialAccount,
    Identifier,
    Invoice,
    Item,
    MonetaryTotal,
    Party,
    PartyLegalEntity,
    PartyTaxScheme,
    PaymentMeans,
    Price,
    Quantity,
    TaxCategory,
    TaxSubtotal,
    TaxTotal,
    money,
)
from .participants import Participant

CURRENCY = "EUR"
STANDARD_RATE = TaxCategory(id="S", percent=Decimal("25"))

SELLER_PARTICIPANT = Participant("0088", "7300010000001", name="Seller Company AB", country_code="SE")
BUYER_PARTICIPANT = Participant("0088", "7300020000002", name="Buyer Company AS", country_code="NO")

SELLER_PARTY = Party(
    endpoint_id=Identifier("7300010000001", "0088"),
    names=("Seller Company AB",),
    postal_address=Address(
        country_code="SE",
        street_name="Main Street 1",
        city_name="Stockholm",
        postal_zone="11122",
    ),
    tax_schemes=(PartyTaxScheme(company_id="SE556677889901"),),
    legal_entities=(PartyLegalEntity(registration_name="Seller Company AB"),),
)

BUYER_PARTY = Party(
    endpoint_id=Identifier("7300020000002", "0088"),
    names=("Buyer Company AS",),
    postal_address=Address(
        country_code="NO",
        street_name="Harbour Road 5",
        city_name="Oslo",
        postal_zone="0150",
    ),
    legal_entities=(PartyLegalEntity(registration_name="Buyer Company AS"),),
)

PAYMENT_MEANS = PaymentMeans(
    code="30",
    payment_ids=("INV-2024-001",),
    payee_account=FinancialAccount(id="SE4550000000058398257466", name="Seller Company AB"),
)


def _line(net: str, quantity: str, unit_price: str, name: str) -> DocumentLine:
    return DocumentLine(
        id="1",
        quantity=Quantity(Decimal(quantity), "EA"),
        line_extension_amount=money(net, CURRENCY),
        item=Item(name=name, tax_category=STANDARD_RATE),
        price=Price(amount=money(unit_price, CURRENCY)),
    )


def _totals(net: str, tax: str, gross: str):
    tax_total = TaxTotal(
        tax_amount=money(tax, CURRENCY),
        subtotals=(
            TaxSubtotal(
                taxable_amount=money(net, CURRENCY),
                tax_amount=money(tax, CURRENCY),
                category=STANDARD_RATE,
            ),
        ),
    )
    monetary_total = MonetaryTotal(
        line_extension_amount=money(net, CURRENCY),
        tax_exclusive_amount=money(net, CURRENCY),
        tax_inclusive_amount=money(gross, CURRENCY),
        payable_amount=money(gross, CURRENCY),
    )
    return tax_total, monetary_total


def sample_invoice() -> Invoice:
    """Eine Position: 10 EA à 100.00, 25 % USt. -> 1000.00 + 250.00 = 1250.00."""

    tax_total, monetary_total = _totals("1000.00", "250.00", "1250.00")
    return Invoice(
        id="INV-2024-001",
        issue_date=date(2024, 1, 15),
        due_date=date(2024, 2, 14),
        currency_code=CURRENCY,
        buyer_reference="PO-4711",
        supplier=SELLER_PARTY,
        customer=BUYER_PARTY,
        deliveries=(Delivery(actual_delivery_date=date(2024, 1, 10)),),
        payment_means=(PAYMENT_MEANS,),
        payment_terms=("Net 30 days",),
        tax_totals=(tax_total,),
        monetary_total=monetary_total,
        lines=(_line("1000.00", "10", "100.00", "Consulting services"),),
    )


def sample_credit_note() -> CreditNote:
    """Gutschrift über 100.00 netto zu INV-2024-001."""

    tax_total, monetary_total = _totals("100.00", "25.00", "125.00")
    return CreditNote(
        id="CN-2024-001",
        issue_date=date(2024, 1, 20),
        currency_code=CURRENCY,
        buyer_reference="PO-4711",
        billing_references=(
            BillingReference(invoice_id="INV-2024-001", invoice_issue_date=date(2024, 1, 15)),
        ),
        supplier=SELLER_PARTY,
        customer=BUYER_PARTY,
        payment_means=(replace(PAYMENT_MEANS, payment_ids=("CN-2024-001",)),),
        tax_totals=(tax_total,),
        monetary_total=monetary_total,
        lines=(_line("100.00", "1", "100.00", "Consulting services (credit)"),),
    )


GERMAN_SELLER_PARTY = Party(
    endpoint_id=Identifier("DE123456789", "9930"),
    names=("Muster Software GmbH",),
    postal_address=Address(
        country_code="DE",
        street_name="Musterstraße 1",
        city_name="Berlin",
        postal_zone="10115",
    ),
    tax_schemes=(PartyTaxScheme(company_id="DE123456789"),),
    legal_entities=(PartyLegalEntity(registration_name="Muster Software GmbH"),),
    contact=Contact(name="Erika Muster", telephone="+49 30 1234567", electronic_mail="rechnung@muster.example"),
)

GERMAN_AUTHORITY_PARTY = Party(
    endpoint_id=Identifier("04011000-12345-67", "0204"),
    names=("Stadtverwaltung Musterstadt",),
    postal_address=Address(
        country_code="DE",
        street_name="Rathausplatz 1",
        city_name="Hannover",
        postal_zone="30159",
    ),
    legal_entities=(PartyLegalEntity(registration_name="Stadtverwaltung Musterstadt"),),
)

SAMPLE_ROUTING_ID = "04011000-12345-67"


def sample_german_invoice() -> Invoice:
    """Rechnung an eine deutsche Behörde, bereit für das XRechnung-Overlay."""

    return replace(
        sample_invoice(),
        id="RE-2024-001",
        buyer_reference=None,
        supplier=GERMAN_SELLER_PARTY,
        customer=GERMAN_AUTHORITY_PARTY,
        payment_means=(
            PaymentMeans(
                code="58",
                payment_ids=("RE-2024-001",),
                payee_account=FinancialAccount(id="DE02120300000000202051", name="Muster Software GmbH"),
            ),
        ),
    )


SAMPLES: Dict[str, Callable[[], object]] = {
    "invoice": sample_invoice,
    "credit-note": sample_credit_note,
    "german-invoice": sample_german_invoice,
}
