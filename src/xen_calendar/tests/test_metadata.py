from __future__ import annotations

import base64
import json

import pytest

from xen_calendar.ingestion.metadata import MetadataDecodeError, decode_token_uri


def test_decodes_name_and_attributes(make_token_uri) -> None:
    uri = make_token_uri("XENFT #42", {"Class": "Apex", "VMUs": "100", "Maturity DateTime": "2025-01-01T00:00:00Z"})

    bag = decode_token_uri(uri)

    assert bag.name == "XENFT #42"
    assert bag.get("Class") == "Apex"
    assert bag.get("VMUs") == "100"
    assert "Maturity DateTime" in bag
    assert bag.get("cRank") == "N/A"


def test_first_label_wins() -> None:
    document = {
        "name": "dup",
        "attributes": [
            {"trait_type": "Term", "value": "100"},
            {"trait_type": "Term", "value": "200"},
            "junk",
        ],
    }
    uri = "data:application/json;base64," + base64.b64encode(json.dumps(document).encode()).decode()

    assert decode_token_uri(uri).get("Term") == "100"


@pytest.mark.parametrize(
    "uri",
    [
        "ipfs://Qm123",
        "data:application/json;base64,not base64 json",
        "data:application/json;base64,WzEsMl0=",
        None,
    ],
)
def test_rejects_non_document_uris(uri) -> None:
    with pytest.raises(MetadataDecodeError):
        decode_token_uri(uri)
