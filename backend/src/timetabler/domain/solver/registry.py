# solver/registry.py
# Mapa global (profesor|aula, día, periodo) -> clase que lo ocupa.

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from timetabler.domain.core.schema import Schedule

SlotKey = Tuple[str, str, int]  # (resource_id, day, period 1-based)


def teacher_key(teacher_id: str, day: str, period: int) -> SlotKey:
    return (f"teacher:{teacher_id}", day, period)


def room_key(room_id: str, day: str, period: int) -> SlotKey:
    return (f"room:{room_id}", day, period)


class ConflictRegistry:
    """
    Se siembra con horarios ya confirmados de clases fuera del lote y se actualiza
    en vivo mientras el lote se resuelve. Un solo hilo es dueño durante el lote.
    """

    def __init__(self, entries: Optional[Dict[SlotKey, str]] = None) -> None:
        self._entries: Dict[SlotKey, str] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: SlotKey) -> bool:
        return key in self._entries

    def owner(self, key: SlotKey) -> Optional[str]:
        return self._entries.get(key)

    def is_taken(self, key: SlotKey, class_id: str) -> bool:
        """Ocupado por OTRA clase."""
        owner = self._entries.get(key)
        return owner is not None and owner != class_id

    def register(self, key: SlotKey, class_id: str) -> None:
        self._entries[key] = class_id

    def release(self, keys: Iterable[SlotKey]) -> None:
        for k in keys:
            self._entries.pop(k, None)

    def copy(self) -> "ConflictRegistry":
        return ConflictRegistry(self._entries)

    def keys_for_class(self, class_id: str) -> List[SlotKey]:
        return [k for k, owner in self._entries.items() if owner == class_id]

    def commit_schedule(self, schedule: Schedule, room_id: Optional[str] = None) -> None:
        for day in schedule.timetable:
            for p in day.periods:
                if p.teacher_id:
                    self.register(teacher_key(p.teacher_id, day.day, p.period), schedule.class_id)
                if room_id and p.subject_id and not p.locked:
                    self.register(room_key(room_id, day.day, p.period), schedule.class_id)

    @classmethod
    def seeded_from(
        cls,
        schedules: Iterable[Schedule],
        room_by_class: Dict[str, Optional[str]],
        exclude_class_ids: Iterable[str] = (),
    ) -> "ConflictRegistry":
        excluded = set(exclude_class_ids)
        registry = cls()
        for s in schedules:
            if s.class_id in excluded:
                continue
            registry.commit_schedule(s, room_by_class.get(s.class_id))
        return registry
