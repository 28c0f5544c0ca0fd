"""PeppolService: end-to-end flow over the loopback access point."""

from __future__ import annotations

from dataclasses import replace

import pytest

from backend.core.config import Settings
from peppol import PeppolService
from peppol.lifecycle import DocumentStatus
from peppol.network import StaticDiscoveryService
from peppol.participants import INVOICE_DOCUMENT_TYPE, Participant
from peppol.samples import (
    BUYER_PARTICIPANT,
    SAMPLE_ROUTING_ID,
    SELLER_PARTICIPANT,
    sample_credit_note,
    sample_german_invoice,
    sample_invoice,
)
from peppol.xrechnung import extend


@pytest.fixture
def service(clock):
    return PeppolService(clock=clock)


def test_create_and_send_invoice(service) -> None:
    events = []
    service.on_document_status_change(events.append)

    result = service.create_and_send(sample_invoice(), SELLER_PARTICIPANT, BUYER_PARTICIPANT)

    assert result.success, result.error
    assert result.message_id.startswith("b2b-peppol-")
    assert result.validation_result.valid
    assert result.document.status is DocumentStatus.SUBMITTED
    assert "<cbc:ID>INV-2024-001</cbc:ID>" in result.document.xml
    assert [event.new_status for event in events] == [DocumentStatus.VALIDATED, DocumentStatus.SUBMITTED]
    assert service.get_document(result.document.document_id) is result.document


def test_create_and_send_with_routing_id(service) -> None:
    result = service.create_and_send(
        sample_german_invoice(), SELLER_PARTICIPANT, BUYER_PARTICIPANT, routing_id=SAMPLE_ROUTING_ID
    )

    assert result.success, result.error
    assert result.validation_result.profile == "XRechnung 2.3"
    xml = result.document.xml
    assert "xrechnung_2.3" in xml
    assert '<cbc:ID schemeID="Leitweg-ID">04011000-12345-67</cbc:ID>' in xml
    assert f"<cbc:BuyerReference>{SAMPLE_ROUTING_ID}</cbc:BuyerReference>" in xml


def test_create_and_send_stops_on_validation_errors(service) -> None:
    result = service.create_and_send(replace(sample_invoice(), lines=()), SELLER_PARTICIPANT, BUYER_PARTICIPANT)

    assert not result.success
    assert result.message_id is None
    assert result.error.startswith("Validation failed with ")
    assert "BR-13" in result.validation_result.codes()
    assert result.document.status is DocumentStatus.DRAFT


def test_render_failure_is_reported_not_raised(service) -> None:
    # BR-55 only warns, so validation passes and rendering refuses the document
    credit_note = replace(sample_credit_note(), billing_references=())

    result = service.create_and_send(credit_note, SELLER_PARTICIPANT, BUYER_PARTICIPANT)

    assert not result.success
    assert "billing reference" in result.error
    [entry] = service.list_documents()
    assert entry.status is DocumentStatus.VALIDATED
    assert entry.xml is None


def test_create_and_send_credit_note(service) -> None:
    result = service.create_and_send(sample_credit_note(), SELLER_PARTICIPANT, BUYER_PARTICIPANT)

    assert result.success, result.error
    assert result.document.document_kind == "creditNote"
    assert result.document.document_type.name == "Peppol BIS Billing 3.0 Credit Note"


def test_refresh_through_service(service) -> None:
    result = service.create_and_send(sample_invoice(), SELLER_PARTICIPANT, BUYER_PARTICIPANT)
    service.gateway.transport.set_status(result.message_id, "delivered", receipt_id="rcpt-1")

    refreshed = service.refresh_document_status(result.document.document_id)

    assert refreshed.status is DocumentStatus.DELIVERED
    assert service.documents_by_status(DocumentStatus.DELIVERED) == [refreshed]
    assert service.statistics()["by_status"]["delivered"] == 1


def test_generate_xml(service) -> None:
    plain = service.generate_xml(sample_invoice())
    german = service.generate_xml(sample_german_invoice(), routing_id=SAMPLE_ROUTING_ID)

    assert "billing:3.0</cbc:CustomizationID>" in plain
    assert "xrechnung_2.3</cbc:CustomizationID>" in german
    assert service.list_documents() == []


def test_validate_xrechnung_splits_findings(service) -> None:
    document = sample_invoice()

    report = service.validate_xrechnung(document)

    assert report.peppol.valid
    assert not report.xrechnung.valid
    assert not report.valid
    assert all(code.startswith("BR-DE-") for code in report.xrechnung.codes())


def test_validate_xrechnung_for_extended_document(service) -> None:
    report = service.validate_xrechnung(extend(sample_german_invoice(), SAMPLE_ROUTING_ID))

    assert report.valid
    assert report.xrechnung.errors == []


def test_participant_capabilities() -> None:
    discovery = StaticDiscoveryService()
    discovery.register(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, "https://ap.buyer.example/as4")
    service = PeppolService(discovery=discovery)

    assert service.can_receive_invoice(BUYER_PARTICIPANT)
    assert not service.can_receive_credit_note(BUYER_PARTICIPANT)
    assert service.lookup_participant(BUYER_PARTICIPANT).found
    assert not service.lookup_participant(SELLER_PARTICIPANT).found


def test_participant_id_helpers() -> None:
    participant = PeppolService.parse_participant_id("0088:7300010000001")

    assert participant == Participant("0088", "7300010000001")
    assert PeppolService.format_participant_id(participant) == "0088:7300010000001"
    assert PeppolService.parse_participant_id("iso6523:0088:123") == Participant("iso6523", "0088:123")
    assert PeppolService.parse_participant_id("7300010000001") is None


def test_own_participant_and_connection() -> None:
    settings = Settings(PEPPOL_SENDER_ID="7300010000001", PEPPOL_SENDER_SCHEME="0088", PEPPOL_AP_URL="")
    service = PeppolService(settings=settings)

    assert service.own_participant() == SELLER_PARTICIPANT
    assert not service.validate_connection()
