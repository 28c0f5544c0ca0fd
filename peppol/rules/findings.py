"""Befunde und Ergebnisse einer Validierung."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationFinding:
    code: str
    message: str
    severity: Severity
    location: Optional[str] = None
    rule_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


@dataclass
class ValidationResult:
    profile: str
    errors: List[ValidationFinding] = field(default_factory=list)
    warnings: List[ValidationFinding] = field(default_factory=list)
    infos: List[ValidationFinding] = field(default_factory=list)
    validated_at: Optional[datetime] = None

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def findings(self) -> List[ValidationFinding]:
        return [*self.errors, *self.warnings, *self.infos]

    def add(self, finding: ValidationFinding) -> None:
        if finding.severity is Severity.ERROR:
            self.errors.append(finding)
        elif finding.severity is Severity.WARNING:
            self.warnings.append(finding)
        else:
            self.infos.append(finding)

    def extend(self, findings: Iterable[ValidationFinding]) -> None:
        for finding in findings:
            self.add(finding)

    def codes(self, severity: Optional[Severity] = None) -> List[str]:
        return [f.code for f in self.findings if severity is None or f.severity is severity]

    def merge(self, other: "ValidationResult", *, profile: Optional[str] = None) -> "ValidationResult":
        stamps = [ts for ts in (self.validated_at, other.validated_at) if ts is not None]
        merged = ValidationResult(
            profile=profile or self.profile,
            validated_at=max(stamps) if stamps else None,
        )
        merged.extend(self.findings)
        merged.extend(other.findings)
        return merged

    def to_dict(self) -> Dict[str, object]:
        return {
            "valid": self.valid,
            "profile": self.profile,
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
            "infos": [f.to_dict() for f in self.infos],
            "validated_at": self.validated_at.isoformat() if self.validated_at else None,
        }
