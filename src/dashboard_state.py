"""Session state container for the triage dashboard."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, MutableMapping, Optional, Sequence

from .state_codec import SHARE_PARAM, DecodeResult, encode_records, load_shared_records
from .triage_records import TriageRecord

logger = logging.getLogger(__name__)

STATE_KEY = "dashboard_state"


@dataclass
class DashboardState:
    records: List[TriageRecord] = field(default_factory=list)
    selected_month: str = ""
    comparison_ids: List[str] = field(default_factory=list)
    chat_history: List[Dict[str, Any]] = field(default_factory=list)
    last_upload_hash: Optional[str] = None
    unlocked: bool = False
    load_result: Optional[DecodeResult] = None
    # Encoded form last written to the URL
    synced_token: Optional[str] = None

    @property
    def record_ids(self) -> List[str]:
        return [r.id for r in self.records]

    def add_record(self, record: TriageRecord) -> None:
        if record.id in self.record_ids:
            raise ValueError(f"Duplicate record id: {record.id}")
        # sorted() is stable, so same-day entries keep insertion order
        self.records = sorted(self.records + [record], key=lambda r: r.dia)

    def delete_record(self, record_id: str) -> bool:
        remaining = [r for r in self.records if r.id != record_id]
        removed = len(remaining) != len(self.records)
        self.records = remaining
        self.comparison_ids = [i for i in self.comparison_ids if i != record_id]
        return removed

    def sync_query_params(self, query_params: MutableMapping[str, str]) -> bool:
        """Write the encoded dataset to the URL. Returns False if skipped."""
        try:
            token = encode_records(self.records)
            if token != self.synced_token or query_params.get(SHARE_PARAM) != token:
                query_params[SHARE_PARAM] = token
                self.synced_token = token
            return True
        except Exception:
            # The in-memory records stay authoritative
            logger.exception("Could not refresh shared link in URL")
            return False


def get_state(
    session_state: MutableMapping[str, Any],
    query_params: MutableMapping[str, str],
    default: Sequence[TriageRecord],
) -> DashboardState:
    if STATE_KEY not in session_state:
        records, result = load_shared_records(query_params, default)
        session_state[STATE_KEY] = DashboardState(records=records, load_result=result)
    return session_state[STATE_KEY]
