from __future__ import annotations

import gzip
import json

import pytest

from utils.dataset_codec import DatasetDecodeError, decode_dataset, encode_dataset
from utils.ofac_entities import EntityAddress, SanctionedEntity


ENTITIES = [
    SanctionedEntity(
        uid="306",
        name="BANCO NACIONAL DE CUBA",
        type="Entity",
        programs=("CUBA",),
        remarks="Also BNC.",
        aka=("BNC",),
        addresses=(EntityAddress(city="Zürich", country="Switzerland"),),
    ),
    SanctionedEntity(uid="36", name="AEROCARIBBEAN AIRLINES"),
]


def test_round_trip_preserves_entities():
    assert decode_dataset(encode_dataset(ENTITIES)) == ENTITIES


def test_encoded_blob_is_gzip_json_array():
    data = json.loads(gzip.decompress(encode_dataset(ENTITIES)).decode("utf-8"))

    assert isinstance(data, list)
    assert data[0]["addresses"] == [{"city": "Zürich", "country": "Switzerland"}]
    # None-valued optionals are omitted, not serialized as null
    assert data[1] == {
        "uid": "36",
        "name": "AEROCARIBBEAN AIRLINES",
        "programs": [],
        "aka": [],
        "addresses": [],
    }


def test_encoding_is_deterministic():
    assert encode_dataset(ENTITIES) == encode_dataset(list(ENTITIES))


def test_empty_dataset():
    assert decode_dataset(encode_dataset([])) == []


def test_decode_tolerates_missing_list_fields():
    blob = gzip.compress(json.dumps([{"uid": "1", "name": "X"}]).encode("utf-8"))
    assert decode_dataset(blob) == [SanctionedEntity(uid="1", name="X")]


@pytest.mark.parametrize(
    "blob",
    [
        b"not gzip at all",
        gzip.compress(b"{not json"),
        gzip.compress(b'{"uid": "1"}'),
        gzip.compress(b'[{"uid": "1"}]'),
        gzip.compress(b"[1, 2]"),
        gzip.compress(b"\xff\xfe\x00"),
        gzip.compress(b'[{"uid": "1", "name": "X", "addresses": ["Main St"]}]'),
        gzip.compress(b'[{"uid": "1", "name": "X", "aka": 5}]'),
        gzip.compress(b'[{"uid": "1", "name": "X", "programs": "SDN"}]'),
    ],
)
def test_decode_rejects_bad_blobs(blob):
    with pytest.raises(DatasetDecodeError):
        decode_dataset(blob)
