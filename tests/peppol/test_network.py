"""Discovery (SML hash, static catalogue) and the access point gateway."""

from __future__ import annotations

import base64
import hashlib
import logging

import pytest

from backend.core.config import Settings
from peppol.network import (
    AccessPointGateway,
    DiscoveryService,
    LoopbackTransport,
    StaticDiscoveryService,
    TransportResult,
    participant_hash,
    sml_hostname,
)
from peppol.participants import (
    BILLING_PROCESS,
    CREDIT_NOTE_DOCUMENT_TYPE,
    INVOICE_DOCUMENT_TYPE,
    Participant,
)
from peppol.samples import BUYER_PARTICIPANT, SELLER_PARTICIPANT

AS2 = "busdox-transport-as2-ver2p0"


class RefusingTransport:
    name = "refusing"

    def deliver(self, payload, *, timeout):
        return TransportResult(ok=False, error="mailbox full")

    def status(self, message_id):
        return None


class ExplodingTransport:
    name = "exploding"

    def deliver(self, payload, *, timeout):
        raise TimeoutError("read timed out")

    def status(self, message_id):
        raise TimeoutError("read timed out")


def test_participant_hash_matches_md5_of_lowercased_key() -> None:
    participant = Participant("0088", "7300010000001")
    expected = hashlib.md5(b"0088::7300010000001").hexdigest()

    assert participant_hash(participant) == expected


def test_participant_hash_is_case_insensitive() -> None:
    assert participant_hash(Participant("9930", "DE123456789")) == participant_hash(
        Participant("9930", "de123456789")
    )


def test_sml_hostname() -> None:
    participant = Participant("0088", "7300010000001")
    digest = hashlib.md5(b"0088::7300010000001").hexdigest()

    assert sml_hostname(participant, "sml.example") == f"B-{digest}.iso6523-actorid-upis.sml.example"
    assert sml_hostname(participant).endswith(".iso6523-actorid-upis.edelivery.tech.ec.europa.eu")


def test_static_discovery_satisfies_protocol() -> None:
    assert isinstance(StaticDiscoveryService(), DiscoveryService)


def test_unknown_participant_lookup() -> None:
    result = StaticDiscoveryService().lookup(BUYER_PARTICIPANT)

    assert not result.found
    assert result.error == "Participant not found in Peppol network"
    assert result.document_types == []


def test_registered_capabilities() -> None:
    discovery = StaticDiscoveryService()
    discovery.register(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, "https://ap.buyer.example/as4")

    result = discovery.lookup(Participant("0088", "7300020000002"))

    assert result.found
    assert result.participant == BUYER_PARTICIPANT
    metadata = result.metadata_for(INVOICE_DOCUMENT_TYPE)
    assert metadata.processes == (BILLING_PROCESS,)
    assert metadata.endpoints[0].transport_profile == "peppol-transport-as4-v2_0"
    assert discovery.can_receive(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE)
    assert not discovery.can_receive(BUYER_PARTICIPANT, CREDIT_NOTE_DOCUMENT_TYPE)
    assert not discovery.can_receive(SELLER_PARTICIPANT, INVOICE_DOCUMENT_TYPE)


def test_endpoint_url_prefers_requested_transport() -> None:
    discovery = StaticDiscoveryService()
    discovery.register(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, "https://ap.buyer.example/as2", transport_profile=AS2)
    discovery.register(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, "https://ap.buyer.example/as4")

    assert discovery.endpoint_url(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE) == "https://ap.buyer.example/as4"
    assert (
        discovery.endpoint_url(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, preferred_transport=AS2)
        == "https://ap.buyer.example/as2"
    )
    assert (
        discovery.endpoint_url(BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, preferred_transport="unknown")
        == "https://ap.buyer.example/as2"
    )
    assert discovery.endpoint_url(BUYER_PARTICIPANT, CREDIT_NOTE_DOCUMENT_TYPE) is None
    assert discovery.endpoint_url(SELLER_PARTICIPANT, INVOICE_DOCUMENT_TYPE) is None


@pytest.mark.parametrize(
    "sender, receiver, code",
    [
        (Participant("88", "7300010000001"), BUYER_PARTICIPANT, "INVALID_SENDER"),
        (SELLER_PARTICIPANT, Participant("0088", "  "), "INVALID_RECEIVER"),
    ],
)
def test_send_rejects_invalid_participants(clock, sender, receiver, code) -> None:
    transport = LoopbackTransport(clock=clock)
    gateway = AccessPointGateway(transport, clock=clock)

    result = gateway.send(sender, receiver, INVOICE_DOCUMENT_TYPE, BILLING_PROCESS, "<Invoice/>")

    assert not result.success
    assert result.error.code == code
    assert transport.message_ids == []


def test_send_delivers_payload(clock) -> None:
    transport = LoopbackTransport(clock=clock)
    gateway = AccessPointGateway(transport, clock=clock)

    result = gateway.send(
        SELLER_PARTICIPANT,
        BUYER_PARTICIPANT,
        INVOICE_DOCUMENT_TYPE,
        BILLING_PROCESS,
        "<Invoice>ä</Invoice>",
        {"documentId": "peppol-1"},
    )

    assert result.success
    assert result.message_id.startswith("b2b-peppol-")
    assert len(result.message_id.split("-")[-1]) == 8
    payload = transport.payload(result.message_id)
    assert base64.b64decode(payload["content"]).decode("utf-8") == "<Invoice>ä</Invoice>"
    assert payload["contentType"] == "application/xml"
    assert payload["receiver"] == {"scheme": "0088", "identifier": "7300020000002"}
    assert payload["metadata"] == {"documentId": "peppol-1"}
    assert gateway.get_status(result.message_id).status == "pending"


def test_send_reports_transport_refusal(clock) -> None:
    gateway = AccessPointGateway(RefusingTransport(), clock=clock)

    result = gateway.send(SELLER_PARTICIPANT, BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, BILLING_PROCESS, "<x/>")

    assert not result.success
    assert result.error.code == "SEND_FAILED"
    assert result.error.message == "mailbox full"


def test_send_reports_transport_exception(clock) -> None:
    gateway = AccessPointGateway(ExplodingTransport(), clock=clock)

    result = gateway.send(SELLER_PARTICIPANT, BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, BILLING_PROCESS, "<x/>")

    assert not result.success
    assert result.error.code == "SEND_FAILED"
    assert result.error.message == "read timed out"
    assert gateway.get_status("anything") is None


def test_send_warns_when_receiver_is_not_registered(clock, caplog) -> None:
    gateway = AccessPointGateway(LoopbackTransport(clock=clock), discovery=StaticDiscoveryService(), clock=clock)

    with caplog.at_level(logging.WARNING):
        result = gateway.send(
            SELLER_PARTICIPANT, BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, BILLING_PROCESS, "<x/>"
        )

    assert result.success
    assert "Receiver not registered for document type" in caplog.text


def test_loopback_status_updates(clock) -> None:
    transport = LoopbackTransport(clock=clock)
    gateway = AccessPointGateway(transport, clock=clock)
    message_id = gateway.send(
        SELLER_PARTICIPANT, BUYER_PARTICIPANT, INVOICE_DOCUMENT_TYPE, BILLING_PROCESS, "<x/>"
    ).message_id

    status = transport.set_status(message_id, "delivered", receipt_id="rcpt-1")

    assert gateway.get_status(message_id) == status
    assert status.receipt_id == "rcpt-1"
    with pytest.raises(ValueError):
        transport.set_status(message_id, "lost")
    with pytest.raises(KeyError):
        transport.set_status("missing", "sent")


def test_validate_connection_and_sender() -> None:
    configured = Settings(
        PEPPOL_AP_URL="https://ap.example",
        PEPPOL_AP_API_KEY="secret",
        PEPPOL_SENDER_ID="7300010000001",
        PEPPOL_SENDER_NAME="Seller Company AB",
    )
    gateway = AccessPointGateway(LoopbackTransport(), settings=configured)

    assert gateway.validate_connection()
    assert not AccessPointGateway(LoopbackTransport(), settings=Settings(PEPPOL_AP_URL="")).validate_connection()

    sender = gateway.sender_participant()
    assert sender == SELLER_PARTICIPANT
    assert sender.name == "Seller Company AB"
    assert sender.country_code is None
