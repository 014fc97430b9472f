from timetabler.domain.core.periods import default_periods_for_name, resolve_periods, subject_rule_for
from timetabler.domain.core.schema import ClassPeriodsOverride, GradeConfig, SubjectRule


def _grade() -> GradeConfig:
    return GradeConfig(
        grade="10",
        subjects={"math": SubjectRule(subject_id="math", periods_per_week=4, class_periods={"10B": 5})},
    )


def test_override_beats_class_map_and_grade_rule() -> None:
    override = ClassPeriodsOverride(class_id="10B", year="2025", semester="1", subject_periods={"math": 6})

    assert resolve_periods("math", _grade(), "10B", override) == 6
    assert resolve_periods("math", _grade(), "10B") == 5
    assert resolve_periods("math", _grade(), "10A") == 4


def test_missing_rule_is_zero_unless_name_defaults_requested() -> None:
    assert resolve_periods("lit", _grade(), "10A") == 0
    assert resolve_periods("lit", None, "10A") == 0
    assert resolve_periods("lit", _grade(), "10A", item_name="Ngữ văn", use_name_defaults=True) == 4


def test_name_defaults_table() -> None:
    assert default_periods_for_name("Toán") == 4
    assert default_periods_for_name("Tiếng Anh 10") == 3
    assert default_periods_for_name("GDCD") == 1
    assert default_periods_for_name("Âm nhạc") == 2
    assert default_periods_for_name(None) == 2


def test_subject_rule_for_falls_back_to_defaults() -> None:
    rule = subject_rule_for(_grade(), "eng")

    assert rule.subject_id == "eng"
    assert rule.max_per_day == 2
    assert rule.allow_consecutive is True
