import copy

import pytest


def _party(endpoint, name, country, street, city, postal, **extra):
    party = {
        "endpointId": {"value": endpoint, "schemeId": "0088"},
        "names": [name],
        "postalAddress": {
            "countryCode": country,
            "streetName": street,
            "cityName": city,
            "postalZone": postal,
        },
        "legalEntities": [{"registrationName": name}],
    }
    party.update(extra)
    return party


STANDARD = {"id": "S", "percent": 25}

# Payload-Form von peppol.samples.sample_invoice()
INVOICE_PAYLOAD = {
    "id": "INV-2024-001",
    "issueDate": "2024-01-15",
    "dueDate": "2024-02-14",
    "currencyCode": "EUR",
    "buyerReference": "PO-4711",
    "supplier": _party(
        "7300010000001", "Seller Company AB", "SE", "Main Street 1", "Stockholm", "11122",
        taxSchemes=[{"companyId": "SE556677889901"}],
    ),
    "customer": _party("7300020000002", "Buyer Company AS", "NO", "Harbour Road 5", "Oslo", "0150"),
    "deliveries": [{"actualDeliveryDate": "2024-01-10"}],
    "paymentMeans": [
        {
            "code": "30",
            "paymentIds": ["INV-2024-001"],
            "payeeAccount": {"id": "SE4550000000058398257466", "name": "Seller Company AB"},
        }
    ],
    "paymentTerms": ["Net 30 days"],
    "taxTotals": [
        {
            "taxAmount": "250.00",
            "subtotals": [{"taxableAmount": "1000.00", "taxAmount": "250.00", "category": STANDARD}],
        }
    ],
    "monetaryTotal": {
        "lineExtensionAmount": "1000.00",
        "taxExclusiveAmount": "1000.00",
        "taxInclusiveAmount": "1250.00",
        "payableAmount": "1250.00",
    },
    "lines": [
        {
            "id": "1",
            "quantity": {"value": "10", "unitCode": "EA"},
            "lineExtensionAmount": "1000.00",
            "item": {"name": "Consulting services", "taxCategory": STANDARD},
            "price": {"amount": "100.00"},
        }
    ],
}


@pytest.fixture
def invoice_payload():
    return copy.deepcopy(INVOICE_PAYLOAD)
