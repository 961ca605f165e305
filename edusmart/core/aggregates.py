"""
Statistics over already-fetched grade and attendance rows.

Every calculation accepts an empty collection and returns zeros instead
of raising. Rounding is half-up, which is what report consumers expect
(83.335 -> 83.34, 62.5 -> 63).
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

ATTENDANCE_STATUSES = ("present", "absent", "late", "excused")
ATTENDED_STATUSES = ("present", "late")
DISTRIBUTION_BUCKETS = ("excellent", "good", "satisfactory", "unsatisfactory")

GRADE_LEVELS = {
    "excellent": {"description": "A'lo", "points": 5},
    "good": {"description": "Yaxshi", "points": 4},
    "satisfactory": {"description": "Qoniqarli", "points": 3},
    "unsatisfactory": {"description": "Qoniqarsiz", "points": 2},
}


def round_half_up(value: float, places: int = 0):
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def round2(value: float) -> float:
    return round_half_up(value, 2)


def percentage(count: int, total: int) -> int:
    if total == 0:
        return 0
    return round_half_up(100 * count / total)


def _value(row: Any, key: str = "grade_value") -> float:
    if isinstance(row, Mapping):
        row = row.get(key)
    return float(row)


# -------------------------
# GRADES
# -------------------------
def grade_bucket(value: float) -> str:
    if value >= 85:
        return "excellent"
    if value >= 70:
        return "good"
    if value >= 60:
        return "satisfactory"
    return "unsatisfactory"


def grade_level(value: float) -> dict:
    bucket = grade_bucket(value)
    return {"level": bucket, **GRADE_LEVELS[bucket]}


def grade_distribution(values: Iterable[float]) -> dict[str, int]:
    distribution = {bucket: 0 for bucket in DISTRIBUTION_BUCKETS}
    for value in values:
        distribution[grade_bucket(value)] += 1
    return distribution


def grade_statistics(grades: Iterable[Any]) -> dict:
    """
    Summary of a grade set.

    ``grades`` may hold raw numbers or grade rows carrying ``grade_value``.
    """
    values = [_value(g) for g in grades]
    if not values:
        return {
            "total": 0,
            "average": 0,
            "highest": 0,
            "lowest": 0,
            "distribution": grade_distribution([]),
        }
    return {
        "total": len(values),
        "average": round2(sum(values) / len(values)),
        "highest": max(values),
        "lowest": min(values),
        "distribution": grade_distribution(values),
    }


def calculate_gpa(grades: Sequence[Any], use_weights: bool = True) -> float:
    """
    Weighted (default) or plain mean of grade values, 2 decimals.

    A missing or zero weight counts as 1.0.
    """
    if not grades:
        return 0
    if not use_weights:
        return round2(sum(_value(g) for g in grades) / len(grades))

    points = 0.0
    total_weight = 0.0
    for grade in grades:
        weight = _weight(grade)
        points += _value(grade) * weight
        total_weight += weight
    return round2(points / total_weight) if total_weight > 0 else 0


def _weight(grade: Any) -> float:
    weight: Optional[float] = grade.get("weight") if isinstance(grade, Mapping) else None
    return float(weight) if weight else 1.0


def average_by(grades: Iterable[Mapping], key: str) -> dict[str, dict]:
    """Group grade rows by ``key`` and summarise each group."""
    groups: dict[str, list] = {}
    for grade in grades:
        groups.setdefault(grade.get(key), []).append(grade)
    return {
        group: {
            "count": len(rows),
            "average": grade_statistics(rows)["average"],
            "gpa": calculate_gpa(rows),
        }
        for group, rows in groups.items()
    }


# -------------------------
# ATTENDANCE
# -------------------------
def attendance_counts(records: Iterable[Any]) -> dict[str, int]:
    counts = {status: 0 for status in ATTENDANCE_STATUSES}
    for record in records:
        status = record.get("status") if isinstance(record, Mapping) else record
        if status in counts:
            counts[status] += 1
    return counts


def attendance_rate(counts: Mapping[str, int]) -> int:
    """Late arrivals count as attended."""
    total = sum(counts.get(status, 0) for status in ATTENDANCE_STATUSES)
    attended = sum(counts.get(status, 0) for status in ATTENDED_STATUSES)
    return percentage(attended, total)


def attendance_statistics(records: Iterable[Any]) -> dict:
    """
    Counts, attendance rate and per-status percentages.

    Percentages are rounded independently and may not add up to 100.
    """
    counts = attendance_counts(records)
    total = sum(counts.values())
    return {
        "total": total,
        **counts,
        "attendanceRate": attendance_rate(counts),
        "percentages": {status: percentage(counts[status], total) for status in ATTENDANCE_STATUSES},
    }


def attendance_by_student(records: Iterable[Mapping]) -> dict[str, dict]:
    grouped: dict[str, list] = {}
    for record in records:
        grouped.setdefault(record["student_id"], []).append(record)
    return {
        student_id: {"records": rows, "summary": attendance_statistics(rows)}
        for student_id, rows in grouped.items()
    }
