"""
Triage Records
Data model for daily triage counts by risk category.

A record holds one day's patient counts across the five fixed risk
categories plus their sum. The sum is always derived, never edited.
"""

import re
import time
import logging
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)


# Risk categories in display (and wire) order
RISK_CATEGORIES = [
    {
        "key": "vermelho",
        "label": "Vermelho",
        "short": "V",
        "color": "#ef4444",
        "description": "Vermelha (Emergencial): Risco iminente de morte. O paciente precisa ser atendido imediatamente.",
    },
    {
        "key": "laranja",
        "label": "Laranja (CRAI)",
        "short": "L",
        "color": "#f97316",
        "description": "Laranja (CRAI): Centro de Referência ao Infantojuvenil atende crianças/adolescentes vítimas de violência.",
    },
    {
        "key": "amarelo",
        "label": "Amarelo",
        "short": "Am",
        "color": "#eab308",
        "description": "Urgente: Risco moderado e não imediato.",
    },
    {
        "key": "verde",
        "label": "Verde",
        "short": "Ve",
        "color": "#22c55e",
        "description": "Pouco Urgente: Casos de baixa gravidade e com o paciente estável.",
    },
    {
        "key": "azul",
        "label": "Azul",
        "short": "Az",
        "color": "#3b82f6",
        "description": "Não Urgente: Casos que não necessitam de atendimento imediato.",
    },
]

CATEGORY_KEYS = [c["key"] for c in RISK_CATEGORIES]

# Canonical field order of the serialized form
RECORD_FIELDS = ["id", "dia"] + CATEGORY_KEYS + ["total"]


class RecordShapeError(ValueError):
    """Raised when an entry does not look like a triage record."""


@dataclass(frozen=True)
class TriageRecord:
    """
    One day of triage counts.

    Attributes:
        id: Opaque unique identifier (timestamp-derived)
        dia: ISO date (YYYY-MM-DD)
        vermelho..azul: Non-negative patient counts per risk category
        total: Sum of the five counts
    """
    id: str
    dia: str
    vermelho: int
    laranja: int
    amarelo: int
    verde: int
    azul: int
    total: int

    def counts(self) -> Dict[str, int]:
        return {key: getattr(self, key) for key in CATEGORY_KEYS}

    def to_dict(self) -> Dict[str, Any]:
        # asdict keeps field declaration order, which is RECORD_FIELDS
        return asdict(self)


def parse_day(value: Any) -> str:
    """
    Validate an ISO calendar date and return it as YYYY-MM-DD.

    Raises:
        ValueError: If the value is not a valid ISO date string
    """
    if not isinstance(value, str):
        raise ValueError(f"Day must be an ISO date string, got {type(value).__name__}")
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        raise ValueError(f"Invalid ISO date: {value!r}") from None


def _check_count(key: str, value: Any) -> int:
    # bool is an int subclass; true/false is never a patient count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Count '{key}' must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"Count '{key}' must be non-negative, got {value}")
    return value


# =============================================================================
# NORMALIZATION UTILITIES
# =============================================================================

def normalize_count(value: Any) -> int:
    """
    Normalize a patient count to a non-negative integer.

    Conversion Rules:
    - int: used as-is
    - float: truncated toward zero (e.g., 12.9 -> 12)
    - numeric string: parsed (e.g., " 7 " -> 7)
    - negative, None, bool, or anything unparseable: 0

    Examples:
        >>> normalize_count("12")
        12
        >>> normalize_count(3.0)
        3
        >>> normalize_count(None)
        0
        >>> normalize_count(-4)
        0
    """
    if value is None or isinstance(value, bool):
        return 0

    try:
        if isinstance(value, str):
            num = int(float(value.strip()))
        elif isinstance(value, (int, float)):
            num = int(value)
        else:
            logger.warning(f"Unexpected count type: {type(value)}, defaulting to 0")
            return 0
    except (ValueError, OverflowError):
        logger.warning(f"Failed to parse count '{value}', defaulting to 0")
        return 0

    return max(0, num)


def normalize_day(value: Any, today: Optional[date] = None) -> str:
    """
    Normalize a shift date to ISO YYYY-MM-DD.

    Accepts ISO dates and Brazilian DD/MM/YYYY. Falls back to today when
    the value is missing or unreadable.

    Examples:
        >>> normalize_day("2023-10-05")
        '2023-10-05'
        >>> normalize_day("05/10/2023")
        '2023-10-05'
    """
    today = today or date.today()
    if not value or not isinstance(value, str):
        return today.isoformat()

    clean = value.strip()
    match = re.fullmatch(r"(\d{1,2})/(\d{1,2})/(\d{4})", clean)
    try:
        if match:
            day, month, year = (int(g) for g in match.groups())
            return date(year, month, day).isoformat()
        return date.fromisoformat(clean[:10]).isoformat()
    except ValueError:
        logger.warning(f"Unreadable day '{value}', using {today.isoformat()}")
        return today.isoformat()


def new_record_id(existing_ids: Iterable[str] = ()) -> str:
    """
    Generate a millisecond-timestamp id that is not already taken.
    """
    taken = set(existing_ids)
    candidate = int(time.time() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def make_record(
    dia: str,
    counts: Optional[Mapping[str, int]] = None,
    record_id: Optional[str] = None,
    existing_ids: Iterable[str] = (),
) -> TriageRecord:
    """
    Create a new record with a fresh id and a derived total.

    Args:
        dia: ISO date of the shift
        counts: Category counts by key; missing categories default to 0
        record_id: Explicit id (generated when omitted)
        existing_ids: Ids already in the collection, to keep ids unique

    Returns:
        TriageRecord whose total equals the sum of its counts

    Raises:
        ValueError: On invalid date or counts
    """
    counts = dict(counts or {})
    unknown = set(counts) - set(CATEGORY_KEYS)
    if unknown:
        raise ValueError(f"Unknown risk categories: {sorted(unknown)}")

    values = {key: _check_count(key, counts.get(key, 0)) for key in CATEGORY_KEYS}

    return TriageRecord(
        id=record_id if record_id is not None else new_record_id(existing_ids),
        dia=parse_day(dia),
        total=sum(values.values()),
        **values,
    )


def record_from_dict(entry: Any, today: Optional[date] = None) -> TriageRecord:
    """
    Build a record from a decoded payload entry.

    Earlier versions of the dashboard stored whatever the form or the AI
    import produced, so values are coerced rather than rejected:
    - counts go through normalize_count (negatives and junk become 0,
      floats are truncated)
    - the day goes through normalize_day (DD/MM/YYYY is converted)
    - integer ids are stringified
    - the total is always recomputed from the coerced counts

    Args:
        entry: One element of the decoded array
        today: Date used for an unreadable day

    Raises:
        RecordShapeError: If the entry has no usable id or day, or a
            stored total that is not a number
    """
    if not isinstance(entry, Mapping):
        raise RecordShapeError(f"Record must be an object, got {type(entry).__name__}")

    record_id = entry.get("id")
    if isinstance(record_id, bool) or not isinstance(record_id, (str, int)):
        raise RecordShapeError(f"Record id must be a string, got {record_id!r}")

    dia = entry.get("dia")
    if not isinstance(dia, str) or not dia.strip():
        raise RecordShapeError(f"Record {record_id}: day must be a non-empty string, got {dia!r}")

    stored_total = entry.get("total")
    if stored_total is not None and (isinstance(stored_total, bool) or not isinstance(stored_total, (int, float))):
        raise RecordShapeError(f"Record {record_id}: total must be a number, got {stored_total!r}")

    values = {key: normalize_count(entry.get(key)) for key in CATEGORY_KEYS}
    total = sum(values.values())
    if stored_total is not None and stored_total != total:
        logger.info(f"Record {record_id}: stored total {stored_total} recomputed as {total}")

    return TriageRecord(id=str(record_id), dia=normalize_day(dia, today), total=total, **values)


def records_from_payload(payload: Any, today: Optional[date] = None) -> List[TriageRecord]:
    """
    Convert a parsed JSON value into a record list.

    Raises:
        RecordShapeError: If the payload is not an array, or any entry
            cannot be read as a record
    """
    if not isinstance(payload, list):
        raise RecordShapeError(f"Expected an array of records, got {type(payload).__name__}")
    return [record_from_dict(entry, today) for entry in payload]


def records_to_payload(records: Iterable[TriageRecord]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]
