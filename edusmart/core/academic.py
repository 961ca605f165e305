"""
Academic calendar helpers.

The academic year runs from September to August. Semester 1 covers
September through January, semester 2 February through June; July and
August already count towards semester 1 of the upcoming year.
"""
import re
from datetime import date
from typing import Optional

ACADEMIC_YEAR_PATTERN = re.compile(r"^\d{4}-\d{4}$")
FIRST_MONTH = 9


def academic_year_for(day: date) -> str:
    start = day.year if day.month >= FIRST_MONTH else day.year - 1
    return f"{start}-{start + 1}"


def semester_for(day: date) -> int:
    if day.month >= FIRST_MONTH or day.month == 1:
        return 1
    if 2 <= day.month <= 6:
        return 2
    return 1


def current_academic_year(today: Optional[date] = None) -> str:
    return academic_year_for(today or date.today())


def current_semester(today: Optional[date] = None) -> int:
    return semester_for(today or date.today())


def is_valid_academic_year(value: str) -> bool:
    """``YYYY-YYYY`` with consecutive years."""
    if not isinstance(value, str) or not ACADEMIC_YEAR_PATTERN.match(value):
        return False
    start, end = (int(part) for part in value.split("-"))
    return end == start + 1


def academic_year_range(academic_year: str) -> tuple[date, date]:
    start, end = (int(part) for part in academic_year.split("-"))
    return date(start, 9, 1), date(end, 8, 31)
