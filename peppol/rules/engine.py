"""Regel-Engine: deklarative Regeltabellen plus numerische Invarianten.

Eine Regel ist ein kleiner Datensatz ``(id, description, severity, predicate)``.
Regelsätze sind unveränderliche, geordnete Tupel solcher Regeln und lassen sich
per ID erweitern, überschreiben oder ausdünnen. ``evaluate`` wertet alle Regeln
aus, wandelt Ausnahmen einzelner Prädikate in ``VALIDATION_ERROR``-Befunde um
und hängt danach die nicht datengetriebenen Summen- und Steuerprüfungen an.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterator, List, Optional, Tuple

from backend.core.config import settings
from backend.core.logging import get_logger

from ..dto import Document
from .findings import Severity, ValidationFinding, ValidationResult
from .invariants import advisory_findings, invariant_findings

logger = get_logger(__name__)

Predicate = Callable[[Document], bool]


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Rule:
    id: str
    description: str
    severity: Severity
    predicate: Predicate = field(repr=False, compare=False)
    location: Optional[str] = None

    def finding(self) -> ValidationFinding:
        return ValidationFinding(
            code=self.id,
            message=self.description,
            severity=self.severity,
            location=self.location,
            rule_id=self.id,
        )


class RuleSetError(ValueError):
    pass


@dataclass(frozen=True)
class RuleSet:
    name: str
    profile: str
    rules: Tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                raise RuleSetError(f"Duplicate rule id {rule.id!r} in rule set {self.name!r}")
            seen.add(rule.id)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __contains__(self, rule_id: object) -> bool:
        return any(rule.id == rule_id for rule in self.rules)

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(rule.id for rule in self.rules)

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def extend(self, *rules: Rule, name: Optional[str] = None, profile: Optional[str] = None) -> "RuleSet":
        return RuleSet(
            name=name or self.name,
            profile=profile or self.profile,
            rules=self.rules + tuple(rules),
        )

    def override(self, *rules: Rule) -> "RuleSet":
        """Ersetzt Regeln gleicher ID an ihrer bisherigen Position."""

        replacements = {rule.id: rule for rule in rules}
        unknown = set(replacements) - set(self.ids)
        if unknown:
            raise RuleSetError(f"Cannot override unknown rule ids: {sorted(unknown)}")
        return replace(self, rules=tuple(replacements.get(r.id, r) for r in self.rules))

    def without(self, *rule_ids: str) -> "RuleSet":
        drop = set(rule_ids)
        return replace(self, rules=tuple(r for r in self.rules if r.id not in drop))

    def renamed(self, name: str, profile: Optional[str] = None) -> "RuleSet":
        return replace(self, name=name, profile=profile or self.profile)


def evaluate_rules(document: Document, rule_set: RuleSet) -> List[ValidationFinding]:
    """Wertet nur die deklarativen Regeln aus (ohne Invariantenprüfung)."""

    findings: List[ValidationFinding] = []
    for rule in rule_set:
        try:
            ok = bool(rule.predicate(document))
        except Exception as exc:
            logger.warning(
                "Rule %s raised during evaluation",
                rule.id,
                extra={"rule_id": rule.id, "rule_set": rule_set.name, "error": str(exc)},
            )
            findings.append(
                ValidationFinding(
                    code="VALIDATION_ERROR",
                    message=f"Error validating rule {rule.id}: {exc}",
                    severity=Severity.ERROR,
                    location=rule.location,
                    rule_id=rule.id,
                )
            )
            continue
        if not ok:
            findings.append(rule.finding())
    return findings


def evaluate(
    document: Document,
    rule_set: RuleSet,
    *,
    clock: Callable[[], datetime] | None = None,
    tolerance: Decimal | None = None,
) -> ValidationResult:
    """Deklarative Regeln, dann Summen-/Steuerinvarianten, dann Hinweise."""

    result = ValidationResult(profile=rule_set.profile)
    result.extend(evaluate_rules(document, rule_set))
    result.extend(
        invariant_findings(
            document,
            tolerance=settings.VALIDATION_TOLERANCE if tolerance is None else tolerance,
        )
    )
    result.extend(advisory_findings(document))
    result.validated_at = (clock or _default_clock)()

    logger.debug(
        "Validated document against %s",
        rule_set.name,
        extra={
            "document_number": getattr(document, "id", None),
            "profile": rule_set.profile,
            "errors": len(result.errors),
            "warnings": len(result.warnings),
        },
    )
    return result
