"""Gemeinsame XML-Helfer für die UBL-Generatoren (Escaping, Beträge, Einrückung)."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Dict, Iterator, List, Optional
from xml.sax.saxutils import escape

from ..dto import Amount, Quantity, quantize_money

_EXTRA_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(value: object) -> str:
    """Escaped die fünf XML-Metazeichen ``& < > " '``."""

    return escape(str(value), _EXTRA_ENTITIES)


def format_amount(value: Decimal) -> str:
    return f"{quantize_money(value):.2f}"


def format_decimal(value: Decimal) -> str:
    normalized = value.normalize()
    return format(normalized, "f")


def format_date(value: date) -> str:
    return value.isoformat()


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format_decimal(value)
    if isinstance(value, date):
        return format_date(value)
    return str(value)


class XmlWriter:
    """Zeilenbasierter Writer mit fester Einrückung; Ausgabe ist byte-stabil."""

    def __init__(self, indent: str = "  ") -> None:
        self._indent = indent
        self._depth = 0
        self._lines: List[str] = []

    def _attrs(self, attrs: Optional[Dict[str, Optional[str]]]) -> str:
        if not attrs:
            return ""
        return "".join(
            f' {key}="{escape_xml(value)}"' for key, value in attrs.items() if value is not None
        )

    def raw(self, line: str) -> None:
        self._lines.append(f"{self._indent * self._depth}{line}")

    def open(self, tag: str, attrs: Optional[Dict[str, Optional[str]]] = None) -> None:
        self.raw(f"<{tag}{self._attrs(attrs)}>")
        self._depth += 1

    def close(self, tag: str) -> None:
        self._depth -= 1
        self.raw(f"</{tag}>")

    @contextmanager
    def block(self, tag: str, attrs: Optional[Dict[str, Optional[str]]] = None) -> Iterator[None]:
        self.open(tag, attrs)
        yield
        self.close(tag)

    def element(self, tag: str, value: object, attrs: Optional[Dict[str, Optional[str]]] = None) -> None:
        """Schreibt ``<cbc:Tag>`` nur, wenn ``value`` gesetzt ist."""

        if value is None or value == "":
            return
        self.raw(f"<{tag}{self._attrs(attrs)}>{escape_xml(_format_value(value))}</{tag}>")

    def elements(self, tag: str, values) -> None:
        for value in values:
            self.element(tag, value)

    def amount(self, tag: str, amount: Optional[Amount]) -> None:
        if amount is None:
            return
        self.raw(
            f'<{tag} currencyID="{escape_xml(amount.currency)}">{format_amount(amount.value)}</{tag}>'
        )

    def quantity(self, tag: str, quantity: Optional[Quantity]) -> None:
        if quantity is None:
            return
        self.raw(
            f'<{tag} unitCode="{escape_xml(quantity.unit_code)}">{format_decimal(quantity.value)}</{tag}>'
        )

    def getvalue(self) -> str:
        return "\n".join(self._lines) + "\n"
