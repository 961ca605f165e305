import pytest

from edusmart.core import aggregates


def test_weighted_gpa():
    grades = [{"grade_value": 80, "weight": 1}, {"grade_value": 90, "weight": 0.5}]
    assert aggregates.calculate_gpa(grades) == 83.33


def test_unweighted_gpa_is_plain_mean():
    grades = [{"grade_value": 80, "weight": 1}, {"grade_value": 90, "weight": 0.5}]
    assert aggregates.calculate_gpa(grades, use_weights=False) == 85


def test_missing_weight_counts_as_one():
    grades = [{"grade_value": 70}, {"grade_value": 90, "weight": None}]
    assert aggregates.calculate_gpa(grades) == 80


def test_gpa_of_nothing_is_zero():
    assert aggregates.calculate_gpa([]) == 0


def test_empty_grade_statistics_are_zero():
    stats = aggregates.grade_statistics([])
    assert stats["total"] == 0
    assert stats["average"] == 0
    assert stats["highest"] == 0
    assert stats["lowest"] == 0
    assert sum(stats["distribution"].values()) == 0


@pytest.mark.parametrize("value,bucket", [
    (100, "excellent"),
    (85, "excellent"),
    (84.99, "good"),
    (70, "good"),
    (69.9, "satisfactory"),
    (60, "satisfactory"),
    (59.99, "unsatisfactory"),
    (0, "unsatisfactory"),
])
def test_bucket_boundaries(value, bucket):
    assert aggregates.grade_bucket(value) == bucket


def test_distribution_covers_every_grade():
    values = [0, 12.5, 59.99, 60, 65, 69.99, 70, 77, 84.99, 85, 99, 100]
    stats = aggregates.grade_statistics(values)
    assert sum(stats["distribution"].values()) == stats["total"] == len(values)
    assert stats["distribution"] == {"excellent": 3, "good": 3, "satisfactory": 3, "unsatisfactory": 3}


def test_grade_statistics_from_rows():
    stats = aggregates.grade_statistics([{"grade_value": 95}, {"grade_value": 80}, {"grade_value": 72}])
    assert stats["average"] == 82.33
    assert stats["highest"] == 95
    assert stats["lowest"] == 72


def test_round_half_up():
    assert aggregates.round_half_up(62.5) == 63
    assert aggregates.round2(83.335) == 83.34


def test_grade_level_has_uzbek_description():
    assert aggregates.grade_level(91) == {"level": "excellent", "description": "A'lo", "points": 5}


def test_attendance_rate_counts_late_as_attended():
    records = ["present", "present", "late", "absent"]
    stats = aggregates.attendance_statistics(records)
    assert stats["total"] == 4
    assert stats["attendanceRate"] == 75
    assert stats["percentages"] == {"present": 50, "absent": 25, "late": 25, "excused": 0}


def test_empty_attendance_rate_is_zero():
    stats = aggregates.attendance_statistics([])
    assert stats["attendanceRate"] == 0
    assert stats["total"] == 0
    assert set(stats["percentages"].values()) == {0}


def test_percentages_are_rounded_independently():
    stats = aggregates.attendance_statistics(["present", "absent", "late"])
    assert stats["percentages"]["present"] == 33
    assert sum(stats["percentages"].values()) == 99


def test_attendance_by_student_groups_records():
    records = [
        {"student_id": "a", "status": "present"},
        {"student_id": "a", "status": "absent"},
        {"student_id": "b", "status": "late"},
    ]
    grouped = aggregates.attendance_by_student(records)
    assert grouped["a"]["summary"]["attendanceRate"] == 50
    assert grouped["b"]["summary"]["attendanceRate"] == 100


def test_average_by_subject():
    grades = [
        {"subject_id": "math", "grade_value": 90, "weight": 1},
        {"subject_id": "math", "grade_value": 70, "weight": 1},
        {"subject_id": "art", "grade_value": 60, "weight": 1},
    ]
    by_subject = aggregates.average_by(grades, "subject_id")
    assert by_subject["math"] == {"count": 2, "average": 80, "gpa": 80}
    assert by_subject["art"]["average"] == 60
