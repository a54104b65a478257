"""
Data Loader Module
Loads the default triage dataset and normalizes AI-extracted entries.

Counts read off a photographed report arrive as loosely typed JSON
("12", 3.0, null, "-"). They are coerced with the same normalizers the
link decoder uses, before a TriageRecord is built.
"""

import json
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
import logging

from .triage_records import (
    CATEGORY_KEYS,
    TriageRecord,
    make_record,
    normalize_count,
    normalize_day,
    records_from_payload,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Base directory for data files
FILES_DIR = Path(__file__).parent.parent / "data"

DEFAULT_RECORDS_FILE = "default_records.json"

# ```json ... ``` wrappers the model sometimes adds despite instructions
_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


# =============================================================================
# NORMALIZATION UTILITIES
# =============================================================================

def strip_code_fences(text: str) -> str:
    """Remove markdown code fences around a JSON answer."""
    return _CODE_FENCE.sub("", text or "").strip()


def parse_extracted_record(
    text: str,
    existing_ids: Iterable[str] = (),
    today: Optional[date] = None,
) -> TriageRecord:
    """
    Turn the model's JSON answer for a report photo into a new record.

    Args:
        text: Raw model output, expected to hold one JSON object
        existing_ids: Ids already in the collection
        today: Date used when the answer has no readable day

    Returns:
        A fresh TriageRecord with derived total

    Raises:
        ValueError: If the text is not a JSON object
    """
    clean = strip_code_fences(text)
    try:
        data = json.loads(clean)
    except ValueError as e:
        raise ValueError(f"Model answer is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    counts = {key: normalize_count(data.get(key)) for key in CATEGORY_KEYS}
    return make_record(
        normalize_day(data.get("dia"), today),
        counts,
        existing_ids=existing_ids,
    )


# =============================================================================
# DATA LOADERS
# =============================================================================

def load_default_records() -> List[TriageRecord]:
    """
    Load the built-in sample dataset shown when no shared data is present.

    Raises:
        FileNotFoundError: If the dataset file is missing
        ValueError: If the file is not a valid record list
    """
    path = FILES_DIR / DEFAULT_RECORDS_FILE

    if not path.exists():
        raise FileNotFoundError(f"Default dataset not found: {path}")

    logger.info(f"Loading default records from {path}")

    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    records = records_from_payload(raw)
    logger.info(f"Loaded {len(records)} default records")
    return records


def record_counts_summary(records: List[TriageRecord]) -> Dict[str, Any]:
    """Small summary used by the sidebar status block."""
    return {
        "records": len(records),
        "first_day": min((r.dia for r in records), default=None),
        "last_day": max((r.dia for r in records), default=None),
        "patients": sum(r.total for r in records),
    }
