"""XRechnung (deutsche CIUS) als Overlay auf Peppol BIS Billing 3.0."""

from .overlay import (
    OVERLAY_RULES,
    XRECHNUNG_CUSTOMIZATION_ID,
    XRECHNUNG_PROFILE_ID,
    XRECHNUNG_PROFILE_LABEL,
    base_rule_set,
    extend,
    is_german_public_sector,
    is_xrechnung,
    routing_reference,
    rule_set,
    validate,
    validate_overlay,
)
from .routing import (
    LEITWEG_ID_SCHEME,
    RouteType,
    RoutingIdentifier,
    RoutingParseResult,
    generate_check_digits,
)

__all__ = [
    "LEITWEG_ID_SCHEME",
    "OVERLAY_RULES",
    "RouteType",
    "RoutingIdentifier",
    "RoutingParseResult",
    "XRECHNUNG_CUSTOMIZATION_ID",
    "XRECHNUNG_PROFILE_ID",
    "XRECHNUNG_PROFILE_LABEL",
    "base_rule_set",
    "extend",
    "generate_check_digits",
    "is_german_public_sector",
    "is_xrechnung",
    "routing_reference",
    "rule_set",
    "validate",
    "validate_overlay",
]
