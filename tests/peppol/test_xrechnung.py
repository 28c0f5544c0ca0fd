"""XRechnung-Overlay: Leitweg-ID, Transformation und BR-DE-Regeln."""

from __future__ import annotations

from dataclasses import replace

import pytest

from peppol.dto import Address
from peppol.rules import Severity
from peppol.samples import SAMPLE_ROUTING_ID, sample_german_invoice, sample_invoice
from peppol.validation import validate as validate_any
from peppol.xrechnung import (
    LEITWEG_ID_SCHEME,
    XRECHNUNG_CUSTOMIZATION_ID,
    RoutingIdentifier,
    extend,
    generate_check_digits,
    is_german_public_sector,
    is_xrechnung,
    routing_reference,
    validate,
    validate_overlay,
)


@pytest.mark.parametrize(
    "value, parts",
    [
        ("991-12345-06", ("991", "12345", "06")),
        ("04011000-12345-67", ("04011000", "12345", "67")),
        ("99-abc1-50", ("99", "abc1", "50")),
    ],
)
def test_parse_valid_routing_ids(value, parts) -> None:
    result = RoutingIdentifier.parse(value)

    assert result.valid
    assert (result.coarse, result.fine, result.check) == parts
    assert result.error is None


@pytest.mark.parametrize("value", ["", None, "9-123-45", "991-12345", "991-12345-6", "991_12345_06"])
def test_parse_rejects_malformed_routing_ids(value) -> None:
    result = RoutingIdentifier.parse(value)

    assert not result.valid
    assert result.error == "Invalid Leitweg-ID format"


def test_from_string_raises_on_invalid_input() -> None:
    with pytest.raises(ValueError):
        RoutingIdentifier.from_string("not-a-leitweg")


def test_check_digits() -> None:
    assert generate_check_digits("99", "1") == "35"
    assert generate_check_digits("99", "A") == "50"
    assert generate_check_digits("99", "a") == "50"

    assert RoutingIdentifier.from_string("99-1-35").check_digits_ok
    assert RoutingIdentifier.from_string("99-a-50").check_digits_ok
    assert not RoutingIdentifier.from_string("99-1-36").check_digits_ok


def test_extend_sets_customization_and_reference() -> None:
    extended = extend(sample_german_invoice(), SAMPLE_ROUTING_ID)

    assert is_xrechnung(extended)
    assert extended.customization_id == XRECHNUNG_CUSTOMIZATION_ID
    assert extended.buyer_reference == SAMPLE_ROUTING_ID
    ref = routing_reference(extended)
    assert ref is not None
    assert ref.id.value == SAMPLE_ROUTING_ID
    assert ref.id.scheme_id == LEITWEG_ID_SCHEME
    assert ref.document_type_code == "130"


def test_extend_is_idempotent() -> None:
    once = extend(sample_german_invoice(), SAMPLE_ROUTING_ID)
    twice = extend(once, SAMPLE_ROUTING_ID)

    assert twice == once
    assert len(twice.additional_references) == 1


def test_extend_buyer_reference_precedence() -> None:
    existing = extend(sample_invoice(), SAMPLE_ROUTING_ID)
    explicit = extend(sample_invoice(), SAMPLE_ROUTING_ID, buyer_reference="EXPLICIT-1")

    assert existing.buyer_reference == "PO-4711"
    assert explicit.buyer_reference == "EXPLICIT-1"


def test_extend_leaves_input_untouched() -> None:
    original = sample_german_invoice()

    extend(original, SAMPLE_ROUTING_ID)

    assert original.buyer_reference is None
    assert original.additional_references == ()


def test_extended_german_invoice_is_valid(fixed_now) -> None:
    result = validate(extend(sample_german_invoice(), SAMPLE_ROUTING_ID), clock=fixed_now)

    assert result.valid, result.to_dict()
    assert result.profile == "XRechnung 2.3"
    assert result.warnings == []
    assert result.validated_at == fixed_now()


def test_dispatcher_uses_overlay_for_xrechnung() -> None:
    extended = extend(sample_german_invoice(), SAMPLE_ROUTING_ID)

    assert validate_any(extended).profile == "XRechnung 2.3"
    assert validate_any(sample_invoice()).profile != "XRechnung 2.3"


def test_missing_seller_telephone_fails() -> None:
    document = sample_german_invoice()
    supplier = replace(document.supplier, contact=replace(document.supplier.contact, telephone=None))

    result = validate(extend(replace(document, supplier=supplier), SAMPLE_ROUTING_ID))

    assert not result.valid
    assert "BR-DE-3" in result.codes()


def test_missing_contact_fails_both_contact_rules() -> None:
    document = sample_german_invoice()
    supplier = replace(document.supplier, contact=None)

    result = validate_overlay(extend(replace(document, supplier=supplier), SAMPLE_ROUTING_ID))

    assert {"BR-DE-3", "BR-DE-4"} <= set(result.codes())


def test_validate_overlay_reports_only_german_rules() -> None:
    # Plain BIS sample: no contact, no Leitweg-ID reference, customization untouched
    result = validate_overlay(sample_invoice())

    assert result.codes()
    assert all(code.startswith("BR-DE-") for code in result.codes())
    assert result.validated_at is None


def test_malformed_routing_reference_is_reported() -> None:
    result = validate_overlay(extend(sample_german_invoice(), "not-a-leitweg"))

    assert "BR-DE-17" in result.codes()


def test_missing_delivery_information_is_a_warning() -> None:
    document = replace(sample_german_invoice(), deliveries=())

    result = validate(extend(document, SAMPLE_ROUTING_ID))

    assert result.valid
    assert "BR-DE-10" in [w.code for w in result.warnings]


def test_german_public_sector_detection() -> None:
    assert is_german_public_sector(extend(sample_german_invoice(), SAMPLE_ROUTING_ID))
    assert not is_german_public_sector(sample_german_invoice())

    document = sample_invoice()
    assert not is_german_public_sector(document)

    customer = replace(document.customer, postal_address=Address(country_code="DE"))
    assert is_german_public_sector(replace(document, customer=customer))


def _without_address_field(party, field):
    return replace(party, postal_address=replace(party.postal_address, **{field: None}))


@pytest.mark.parametrize(
    "role, field, code",
    [
        ("supplier", "city_name", "BR-DE-5"),
        ("supplier", "postal_zone", "BR-DE-6"),
        ("customer", "city_name", "BR-DE-7"),
        ("customer", "postal_zone", "BR-DE-8"),
    ],
)
def test_missing_city_or_postal_code_fails(role, field, code) -> None:
    document = sample_german_invoice()
    party = _without_address_field(getattr(document, role), field)

    result = validate(extend(replace(document, **{role: party}), SAMPLE_ROUTING_ID))

    assert not result.valid
    assert code in result.codes(Severity.ERROR)


def test_missing_payee_account_fails_br_de_1() -> None:
    document = sample_german_invoice()
    means = replace(document.payment_means[0], payee_account=None)

    result = validate_overlay(extend(replace(document, payment_means=(means,)), SAMPLE_ROUTING_ID))

    assert "BR-DE-1" in result.codes(Severity.ERROR)


def test_standard_rate_without_vat_breakdown_fails_br_de_9() -> None:
    document = sample_german_invoice()
    tax_total = replace(document.tax_totals[0], subtotals=())

    result = validate_overlay(extend(replace(document, tax_totals=(tax_total,)), SAMPLE_ROUTING_ID))

    assert "BR-DE-9" in result.codes(Severity.ERROR)


def test_missing_due_date_is_a_warning_br_de_21() -> None:
    document = replace(sample_german_invoice(), due_date=None)

    result = validate(extend(document, SAMPLE_ROUTING_ID))

    assert result.valid
    assert "BR-DE-21" in result.codes(Severity.WARNING)


def test_payment_means_due_date_satisfies_br_de_21() -> None:
    document = sample_german_invoice()
    means = replace(document.payment_means[0], due_date=document.due_date)
    document = replace(document, due_date=None, payment_means=(means,))

    result = validate(extend(document, SAMPLE_ROUTING_ID))

    assert "BR-DE-21" not in result.codes()
