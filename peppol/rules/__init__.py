"""Regel-Engine und Regeltabellen für Peppol BIS Billing 3.0."""

from .bis_billing import (
    CREDIT_NOTE_RULES,
    INVOICE_RULES,
    PROFILE_LABEL,
    rule_set_for,
    validate_credit_note,
    validate_document,
    validate_invoice,
)
from .engine import Rule, RuleSet, RuleSetError, evaluate, evaluate_rules
from .findings import Severity, ValidationFinding, ValidationResult

__all__ = [
    "CREDIT_NOTE_RULES",
    "INVOICE_RULES",
    "PROFILE_LABEL",
    "Rule",
    "RuleSet",
    "RuleSetError",
    "Severity",
    "ValidationFinding",
    "ValidationResult",
    "evaluate",
    "evaluate_rules",
    "rule_set_for",
    "validate_credit_note",
    "validate_document",
    "validate_invoice",
]
