"""Statistics Aggregator - read-only roll-ups over normalized contacts."""

from typing import Any, Dict, List

from schemas.contact_schema import COLUMN_GROUPS, COLUMNS
from services.row_normalizer import ContactRecord, group_completeness, is_complete

UNKNOWN_STATE = "Tidak Diketahui"


def _pct(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def compute_stats(records: List[ContactRecord]) -> Dict[str, Any]:
    """
    Totals, completion rate, per-group average completion, per-field fill
    rate and a per-state breakdown sorted by count (descending).

    Recomputed on every call.
    """
    total = len(records)
    complete = sum(1 for r in records if is_complete(r.fields))

    group_sums = {group: 0 for group in COLUMN_GROUPS}
    field_filled = {col.key: 0 for col in COLUMNS}
    by_state: Dict[str, int] = {}

    for record in records:
        for group, info in group_completeness(record.fields).items():
            group_sums[group] += info["pct"]
        for col in COLUMNS:
            if record.fields.get(col.key):
                field_filled[col.key] += 1
        state = record.fields.get("state") or UNKNOWN_STATE
        by_state[state] = by_state.get(state, 0) + 1

    by_group = {
        group: {
            "label": label,
            "avgCompletion": round(group_sums[group] / total) if total else 0,
        }
        for group, label in COLUMN_GROUPS.items()
    }

    by_field = [
        {
            "key": col.key,
            "label": col.label,
            "group": col.group,
            "fillRate": _pct(field_filled[col.key], total),
            "filled": field_filled[col.key],
            "total": total,
        }
        for col in COLUMNS
    ]

    # Stable sort keeps first-seen order for equal counts
    by_negeri = [
        {"negeri": state, "total": count}
        for state, count in sorted(by_state.items(), key=lambda item: -item[1])
    ]

    return {
        "total": total,
        "lengkap": complete,
        "tidakLengkap": total - complete,
        "peratusan": _pct(complete, total),
        "byGroup": by_group,
        "byField": by_field,
        "byNegeri": by_negeri,
    }
