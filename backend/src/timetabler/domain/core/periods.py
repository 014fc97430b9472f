# core/periods.py
# Resolución de "số tiết/tuần" efectivo para (asignatura|actividad, curso, clase).

from __future__ import annotations

from typing import Optional, Tuple

from timetabler.domain.core.schema import (
    ActivityRule,
    ClassPeriodsOverride,
    GradeConfig,
    SubjectRule,
)


DEFAULT_PERIODS_FALLBACK = 2

# Orden importa: se busca por subcadena y gana la primera coincidencia.
NAME_DEFAULTS: Tuple[Tuple[str, int], ...] = (
    ("toán", 4),
    ("ngữ văn", 4),
    ("văn", 4),
    ("tiếng anh", 3),
    ("anh", 3),
    ("vật lý", 2),
    ("hóa học", 2),
    ("hóa", 2),
    ("sinh học", 2),
    ("sinh", 2),
    ("lịch sử", 2),
    ("địa lý", 2),
    ("địa", 2),
    ("giáo dục công dân", 1),
    ("gdcd", 1),
    ("thể dục", 2),
    ("công nghệ", 1),
    ("tin học", 1),
    ("tin", 1),
)


def default_periods_for_name(name: Optional[str]) -> int:
    """Tabla heurística por nombre de asignatura; último recurso."""
    lowered = (name or "").lower()
    for key, periods in NAME_DEFAULTS:
        if key in lowered:
            return periods
    return DEFAULT_PERIODS_FALLBACK


def resolve_periods(
    item_id: str,
    grade_config: Optional[GradeConfig],
    class_id: str,
    override: Optional[ClassPeriodsOverride] = None,
    *,
    is_activity: bool = False,
    item_name: Optional[str] = None,
    use_name_defaults: bool = False,
) -> int:
    """
    Orden de búsqueda:
      1) ClassPeriodsOverride de la clase
      2) mapa por clase dentro de la regla del curso
      3) periods_per_week de la regla del curso
      4) tabla por nombre (solo si use_name_defaults)
    Sin configuración devuelve 0; nunca lanza.
    """
    if override is not None:
        table = override.activity_periods if is_activity else override.subject_periods
        value = table.get(item_id)
        if value:
            return int(value)

    rule = _rule_for(item_id, grade_config, is_activity)
    if rule is not None:
        value = rule.class_periods.get(class_id)
        if value:
            return int(value)
        if rule.periods_per_week:
            return int(rule.periods_per_week)

    if use_name_defaults and not is_activity:
        return default_periods_for_name(item_name)
    return 0


def subject_rule_for(grade_config: Optional[GradeConfig], subject_id: str) -> SubjectRule:
    """Regla efectiva con valores por defecto si el curso no la define."""
    rule = grade_config.subject_rule(subject_id) if grade_config else None
    return rule if rule is not None else SubjectRule(subject_id=subject_id)


def _rule_for(item_id: str, grade_config: Optional[GradeConfig], is_activity: bool):
    if grade_config is None:
        return None
    if not is_activity:
        return grade_config.subject_rule(item_id)
    return next((a for a in grade_config.activities if a.activity_id == item_id), None)


def activity_periods(rule: ActivityRule, class_id: str, override: Optional[ClassPeriodsOverride]) -> int:
    if override is not None:
        value = override.activity_periods.get(rule.activity_id)
        if value:
            return int(value)
    value = rule.class_periods.get(class_id)
    if value:
        return int(value)
    return int(rule.periods_per_week or 0)
