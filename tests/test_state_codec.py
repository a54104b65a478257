"""
Shared State Codec Tests
Encoding, multi-format decoding and URL helpers.
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import json
from urllib.parse import parse_qs, urlsplit

import pytest

from src.state_codec import (
    FORMAT_LZ_STRING,
    SHARE_PARAM,
    build_share_url,
    decode_records,
    encode_records,
    load_shared_records,
    to_canonical_json,
)
from src.triage_records import make_record
from cases import LEGACY_LINKS, LZ_STRING_LINKS, REJECTED_LINKS


@pytest.fixture
def two_days():
    return [
        make_record("2023-10-01", {"vermelho": 2, "laranja": 1, "amarelo": 10, "verde": 25, "azul": 5}, record_id="1"),
        make_record("2023-10-02", {"vermelho": 1, "laranja": 0, "amarelo": 12, "verde": 30, "azul": 2}, record_id="2"),
    ]


class TestRoundTrip:

    def test_two_records(self, two_days):
        token = encode_records(two_days)
        result = decode_records(token)

        assert result.ok
        assert result.format == FORMAT_LZ_STRING
        assert result.records == two_days
        assert [r.total for r in result.records] == [43, 45]

    def test_empty_list(self):
        result = decode_records(encode_records([]))
        assert result.ok
        assert result.records == []

    def test_non_ascii_id(self):
        records = [make_record("2023-10-05", {"verde": 4}, record_id="plantão-ç-1")]
        result = decode_records(encode_records(records))
        assert result.ok
        assert result.records[0].id == "plantão-ç-1"

    def test_token_is_url_safe(self, two_days):
        token = encode_records(two_days)
        assert all(ch.isalnum() or ch in "+-$" for ch in token)

    def test_encoding_is_deterministic(self, two_days):
        assert encode_records(two_days) == encode_records(list(two_days))

    def test_plus_turned_into_space(self, two_days):
        token = encode_records(two_days)
        result = decode_records(token.replace("+", " "))
        assert result.ok
        assert result.records == two_days


def test_canonical_json_field_order(two_days):
    payload = json.loads(to_canonical_json(two_days[:1]))
    assert list(payload[0]) == ["id", "dia", "vermelho", "laranja", "amarelo", "verde", "azul", "total"]
    assert " " not in to_canonical_json(two_days)


@pytest.mark.parametrize("case", LEGACY_LINKS, ids=[c["id"] for c in LEGACY_LINKS])
def test_legacy_links_decode(case):
    result = decode_records(case["token"])

    assert result.ok, result.error
    assert result.format == case["expected"]["format"]
    assert [r.to_dict() for r in result.records] == case["expected"]["records"]


@pytest.mark.parametrize("case", LZ_STRING_LINKS, ids=[c["id"] for c in LZ_STRING_LINKS])
def test_browser_links_decode(case):
    result = decode_records(case["token"])

    assert result.ok, result.error
    assert result.format == FORMAT_LZ_STRING
    assert [r.to_dict() for r in result.records] == case["expected"]["records"]


def test_sample_pair_encodes_like_the_browser():
    browser = next(c for c in LZ_STRING_LINKS if c["id"] == "browser_two_days")
    records = [
        make_record("2023-10-01", {"vermelho": 2, "laranja": 5, "amarelo": 15, "verde": 30, "azul": 10}, record_id="1"),
        make_record("2023-10-02", {"vermelho": 1, "laranja": 8, "amarelo": 12, "verde": 35, "azul": 8}, record_id="2"),
    ]

    assert [r.total for r in records] == [62, 64]
    assert encode_records(records) == browser["token"]
    assert decode_records(encode_records(records)).records == records


@pytest.mark.parametrize("case", REJECTED_LINKS, ids=[c["id"] for c in REJECTED_LINKS])
def test_invalid_links_fail_closed(case):
    result = decode_records(case["token"])

    assert not result.ok
    assert result.records == []
    assert result.error


def test_empty_and_missing_input():
    assert not decode_records("").ok
    assert not decode_records(None).ok


def test_failure_lists_every_strategy():
    result = decode_records("not-a-valid-token!!")
    for name in ("lz-string", "base64-utf8", "base64-latin1"):
        assert name in result.error


class TestLoadSharedRecords:

    def test_missing_param_uses_default(self, two_days):
        records, result = load_shared_records({}, two_days)
        assert records == two_days
        assert result is None

    def test_valid_param(self, two_days):
        records, result = load_shared_records({SHARE_PARAM: encode_records(two_days[:1])}, two_days)
        assert records == two_days[:1]
        assert result.ok

    def test_broken_param_falls_back(self, two_days):
        records, result = load_shared_records({SHARE_PARAM: "not-a-valid-token!!"}, two_days)
        assert records == two_days
        assert result is not None and not result.ok

    def test_default_is_copied(self, two_days):
        records, _ = load_shared_records({}, two_days)
        records.pop()
        assert len(two_days) == 2


class TestBuildShareUrl:

    def test_adds_data_param(self, two_days):
        url = build_share_url("https://painel.example.org/", two_days)
        parts = urlsplit(url)

        assert parts.netloc == "painel.example.org"
        token = parse_qs(parts.query)[SHARE_PARAM][0]
        assert decode_records(token).records == two_days

    def test_replaces_existing_data_and_keeps_other_params(self, two_days):
        url = build_share_url("https://painel.example.org/app?lang=pt&data=old", two_days)
        query = parse_qs(urlsplit(url).query)

        assert query["lang"] == ["pt"]
        assert len(query[SHARE_PARAM]) == 1
        assert query[SHARE_PARAM][0] != "old"

    def test_bare_host_gets_root_path(self, two_days):
        url = build_share_url("http://localhost:8501", two_days)
        assert url.startswith("http://localhost:8501/?data=")
