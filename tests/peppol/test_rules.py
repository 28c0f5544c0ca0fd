"""Rule engine: BIS Billing rule tables, numeric invariants, rule-set composition."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from peppol.dto import BillingReference, Identifier, TaxCategory, money
from peppol.rules import (
    INVOICE_RULES,
    Rule,
    RuleSet,
    RuleSetError,
    Severity,
    evaluate,
    validate_credit_note,
    validate_document,
    validate_invoice,
)
from peppol.rules import bis_billing
from peppol.samples import sample_credit_note, sample_invoice


def _with_line(document, **changes):
    return replace(document, lines=(replace(document.lines[0], **changes),))


def test_sample_invoice_is_valid(fixed_now) -> None:
    result = validate_invoice(sample_invoice(), clock=fixed_now)

    assert result.valid
    assert result.errors == []
    assert result.infos == []
    assert result.profile == "Peppol BIS Billing 3.0"
    assert result.validated_at == fixed_now()


def test_sample_credit_note_is_valid() -> None:
    result = validate_credit_note(sample_credit_note())

    assert result.valid
    assert result.warnings == []


def test_line_sum_mismatch_reports_br_co_10() -> None:
    invoice = _with_line(sample_invoice(), line_extension_amount=money("900.00", "EUR"))

    result = validate_invoice(invoice)

    assert not result.valid
    assert "BR-CO-10" in result.codes(Severity.ERROR)


def test_difference_within_tolerance_is_accepted() -> None:
    invoice = _with_line(sample_invoice(), line_extension_amount=money("1000.01", "EUR"))

    result = validate_invoice(invoice)

    assert "BR-CO-10" not in result.codes()
    assert result.valid


def test_tolerance_can_be_tightened() -> None:
    invoice = _with_line(sample_invoice(), line_extension_amount=money("1000.01", "EUR"))

    result = evaluate(invoice, INVOICE_RULES, tolerance=Decimal("0"))

    assert "BR-CO-10" in result.codes(Severity.ERROR)


def test_tax_inclusive_mismatch_reports_br_co_15_and_16() -> None:
    invoice = sample_invoice()
    totals = replace(invoice.monetary_total, tax_inclusive_amount=money("1200.00", "EUR"))

    result = validate_invoice(replace(invoice, monetary_total=totals))

    codes = result.codes(Severity.ERROR)
    assert "BR-CO-15" in codes
    assert "BR-CO-16" in codes


def test_zero_lines_fail_with_at_least_one_line() -> None:
    result = validate_invoice(replace(sample_invoice(), lines=()))

    br13 = [f for f in result.errors if f.code == "BR-13"]
    assert br13
    assert "at least one Invoice line" in br13[0].message


def test_duplicate_line_ids_reported_once() -> None:
    invoice = sample_invoice()
    line = invoice.lines[0]
    half = money("500.00", "EUR")
    lines = (replace(line, line_extension_amount=half), replace(line, line_extension_amount=half))

    result = validate_invoice(replace(invoice, lines=lines))

    duplicates = [f for f in result.errors if f.code == "BR-CO-21"]
    assert len(duplicates) == 1
    assert duplicates[0].message.endswith(": 1")


def test_standard_rate_without_percent_fails() -> None:
    invoice = sample_invoice()
    item = replace(invoice.lines[0].item, tax_category=TaxCategory(id="S"))

    result = validate_invoice(_with_line(invoice, item=item))

    assert "BR-S-08" in result.codes(Severity.ERROR)


def test_zero_rate_with_percent_fails() -> None:
    invoice = sample_invoice()
    item = replace(invoice.lines[0].item, tax_category=TaxCategory(id="Z", percent=Decimal("5")))

    result = validate_invoice(_with_line(invoice, item=item))

    assert "BR-Z-08" in result.codes(Severity.ERROR)


def test_unexpected_ubl_version_is_a_warning() -> None:
    result = validate_invoice(replace(sample_invoice(), ubl_version_id="2.0"))

    assert result.valid
    assert result.codes(Severity.WARNING) == ["UBL-CR-001"]


def test_missing_recommended_fields_are_infos_only() -> None:
    result = validate_invoice(replace(sample_invoice(), buyer_reference=None, payment_means=()))

    assert result.valid
    assert result.codes(Severity.INFO) == ["PEPPOL-INFO-001", "PEPPOL-INFO-002"]


def test_unsupported_currency_fails_br_05() -> None:
    result = validate_invoice(replace(sample_invoice(), currency_code="XYZ"))

    assert "BR-05" in result.codes(Severity.ERROR)


def test_unknown_endpoint_scheme_fails_r003() -> None:
    invoice = sample_invoice()
    supplier = replace(invoice.supplier, endpoint_id=Identifier("7300010000001", "1234"))

    result = validate_invoice(replace(invoice, supplier=supplier))

    assert "PEPPOL-EN16931-R003" in result.codes(Severity.ERROR)


def test_credit_note_without_invoice_reference_warns_br_55() -> None:
    result = validate_credit_note(replace(sample_credit_note(), billing_references=()))

    assert result.valid
    assert "BR-55" in result.codes(Severity.WARNING)



def test_tax_exclusive_mismatch_reports_br_co_13() -> None:
    invoice = sample_invoice()
    totals = replace(invoice.monetary_total, allowance_total_amount=money("50.00", "EUR"))

    result = validate_invoice(replace(invoice, monetary_total=totals))

    findings = [f for f in result.findings if f.code == "BR-CO-13"]
    assert len(findings) == 1
    assert findings[0].severity is Severity.ERROR
    assert "= 950.00" in findings[0].message


def test_credit_note_reference_found_after_other_references() -> None:
    credit_note = sample_credit_note()
    references = (BillingReference(credit_note_id="CN-2023-007"),) + credit_note.billing_references

    result = validate_credit_note(replace(credit_note, billing_references=references))

    assert "BR-55" not in result.codes()


def test_shared_rule_lookup_rejects_unknown_ids() -> None:
    with pytest.raises(RuleSetError):
        bis_billing._shared("BR-XX", "unknown")


def test_credit_note_line_wording() -> None:
    result = validate_document(replace(sample_credit_note(), lines=()))

    br13 = [f for f in result.errors if f.code == "BR-13"][0]
    assert "Credit Note line" in br13.message
    assert br13.location == "cac:CreditNoteLine"


def test_raising_predicate_becomes_validation_error() -> None:
    def explode(_doc):
        raise KeyError("boom")

    rule_set = INVOICE_RULES.extend(
        Rule(id="X-01", description="explodes", severity=Severity.ERROR, predicate=explode)
    )

    result = evaluate(sample_invoice(), rule_set)

    failures = [f for f in result.errors if f.code == "VALIDATION_ERROR"]
    assert len(failures) == 1
    assert failures[0].rule_id == "X-01"
    assert "X-01" in failures[0].message


def test_override_keeps_position_and_rejects_unknown_ids() -> None:
    always_ok = replace(INVOICE_RULES.get("BR-05"), predicate=lambda doc: True)

    overridden = INVOICE_RULES.override(always_ok)

    assert overridden.ids == INVOICE_RULES.ids
    assert "BR-05" not in evaluate(replace(sample_invoice(), currency_code="XYZ"), overridden).codes()
    with pytest.raises(RuleSetError):
        INVOICE_RULES.override(replace(always_ok, id="NOPE"))


def test_without_and_duplicate_ids() -> None:
    trimmed = INVOICE_RULES.without("BR-13")

    assert "BR-13" not in trimmed
    assert len(trimmed) == len(INVOICE_RULES) - 1
    with pytest.raises(RuleSetError):
        RuleSet(name="dup", profile="x", rules=(INVOICE_RULES.get("BR-01"), INVOICE_RULES.get("BR-01")))
