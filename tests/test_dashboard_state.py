"""
Dashboard State Tests
Record collection edits and URL synchronization.
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from src.dashboard_state import STATE_KEY, DashboardState, get_state
from src.state_codec import SHARE_PARAM, decode_records, encode_records
from src.triage_records import make_record


@pytest.fixture
def records():
    return [
        make_record("2023-10-01", {"verde": 3}, record_id="1"),
        make_record("2023-10-03", {"amarelo": 2}, record_id="3"),
    ]


class TestEdits:

    def test_add_keeps_day_order(self, records):
        state = DashboardState(records=records)
        state.add_record(make_record("2023-10-02", {"azul": 1}, record_id="2"))
        assert [r.dia for r in state.records] == ["2023-10-01", "2023-10-02", "2023-10-03"]

    def test_add_same_day_keeps_insertion_order(self, records):
        state = DashboardState(records=records)
        state.add_record(make_record("2023-10-01", {"azul": 1}, record_id="1b"))
        assert [r.id for r in state.records] == ["1", "1b", "3"]

    def test_add_duplicate_id_rejected(self, records):
        state = DashboardState(records=records)
        with pytest.raises(ValueError, match="Duplicate"):
            state.add_record(make_record("2023-10-05", record_id="1"))

    def test_delete_removes_record_and_selection(self, records):
        state = DashboardState(records=records, comparison_ids=["1", "3"])
        assert state.delete_record("1")
        assert state.record_ids == ["3"]
        assert state.comparison_ids == ["3"]

    def test_delete_unknown_id(self, records):
        state = DashboardState(records=records)
        assert not state.delete_record("missing")
        assert len(state.records) == 2


class TestSync:

    def test_writes_encoded_records(self, records):
        state = DashboardState(records=records)
        params = {}
        assert state.sync_query_params(params)
        assert decode_records(params[SHARE_PARAM]).records == records

    def test_updates_after_edit(self, records):
        state = DashboardState(records=records)
        params = {}
        state.sync_query_params(params)
        state.delete_record("3")
        state.sync_query_params(params)
        assert params[SHARE_PARAM] == encode_records(records[:1])

    def test_encoding_failure_is_swallowed(self, records, monkeypatch):
        def broken(_records):
            raise RuntimeError("boom")

        monkeypatch.setattr("src.dashboard_state.encode_records", broken)
        state = DashboardState(records=records)
        params = {SHARE_PARAM: "previous"}

        assert state.sync_query_params(params) is False
        assert params[SHARE_PARAM] == "previous"
        assert state.records == records


class TestGetState:

    def test_created_once_per_session(self, records):
        session = {}
        first = get_state(session, {}, records)
        first.selected_month = "2023-10"
        second = get_state(session, {}, [])

        assert first is second
        assert session[STATE_KEY].selected_month == "2023-10"

    def test_loads_shared_records(self, records):
        shared = records[1:]
        state = get_state({}, {SHARE_PARAM: encode_records(shared)}, records)
        assert state.records == shared
        assert state.load_result.ok

    def test_broken_link_falls_back_to_default(self, records):
        state = get_state({}, {SHARE_PARAM: "not-a-valid-token!!"}, records)
        assert state.records == records
        assert not state.load_result.ok
