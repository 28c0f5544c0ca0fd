"""Peppol-Dokumente rendern und prüfen (UBL 2.1, optional mit XRechnung-Overlay)."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from backend.core.logging import init_logging
from peppol.dto import Document
from peppol.loader import DocumentLoadError, load_document_file
from peppol.samples import SAMPLES
from peppol.ubl import RenderError, render_document
from peppol.validation import validate
from peppol.xrechnung import extend


def _iso_datetime(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _load(args: argparse.Namespace) -> Document:
    if args.input is not None:
        return load_document_file(args.input)
    return SAMPLES[args.sample]()


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render or validate Peppol BIS Billing documents")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", type=Path, help="Dokument als JSON- oder YAML-Datei")
    source.add_argument("--sample", choices=sorted(SAMPLES), help="Eingebautes Beispieldokument")
    parser.add_argument("--routing-id", help="Leitweg-ID; wendet das XRechnung-Overlay an")
    parser.add_argument("--validate", action="store_true", help="JSON-Prüfbericht statt XML ausgeben")
    parser.add_argument("--output", type=Path, help="XML in Datei schreiben statt auf stdout")
    parser.add_argument("--now", help="ISO-8601 Zeitstempel für deterministische Prüfberichte")
    parser.add_argument("--log-level", help="Log-Level (default: Settings.log_level)")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    init_logging(args.log_level, stream=sys.stderr)

    try:
        fixed_now = _iso_datetime(args.now) if args.now else None
        document = _load(args)
        if args.routing_id:
            document = extend(document, args.routing_id)
        xml = render_document(document) if (args.output or not args.validate) else None
        if xml is not None and args.output:
            args.output.write_text(xml, encoding="utf-8")
    except (DocumentLoadError, RenderError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.validate:
        result = validate(document, clock=(lambda: fixed_now) if fixed_now else None)
        print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
        return 0 if result.valid else 1

    if not args.output:
        sys.stdout.write(xml)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
