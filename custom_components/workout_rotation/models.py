"""Data model for Workout Rotation.

Records are plain dataclasses. Persisted form is the dict returned by
``as_dict`` serialized as JSON text, one record per store key.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def new_exercise_id() -> str:
    return f"ex_{uuid4().hex[:10]}"


def new_workout_id() -> str:
    return f"wk_{uuid4().hex[:10]}"


def _opt_str(value: Any) -> str | None:
    s = str(value or "").strip()
    return s or None


def is_remote_url(value: str | None) -> bool:
    return bool(value) and str(value).startswith(("http://", "https://"))


@dataclass(frozen=True)
class Exercise:
    """One exercise owned by a workout."""

    id: str
    name: str
    image: str | None = None
    original_image: str | None = None
    completed: bool = False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Exercise:
        return cls(
            id=str(raw.get("id") or "").strip() or new_exercise_id(),
            name=str(raw.get("name") or "").strip(),
            image=_opt_str(raw.get("image")),
            original_image=_opt_str(raw.get("original_image")),
            completed=bool(raw.get("completed")),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "original_image": self.original_image,
            "completed": self.completed,
        }


@dataclass(frozen=True)
class Workout:
    """The workout occupying one day slot."""

    id: str
    day: int
    title: str
    exercises: tuple[Exercise, ...]
    created_at: str = field(default_factory=now_iso)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Workout:
        exercises = raw.get("exercises") or []
        if not isinstance(exercises, list | tuple):
            exercises = []
        return cls(
            id=str(raw.get("id") or "").strip() or new_workout_id(),
            day=int(raw.get("day") or 0),
            title=str(raw.get("title") or "").strip(),
            exercises=tuple(Exercise.from_dict(e) for e in exercises if isinstance(e, dict)),
            created_at=str(raw.get("created_at") or "").strip() or now_iso(),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "day": self.day,
            "title": self.title,
            "exercises": [e.as_dict() for e in self.exercises],
            "created_at": self.created_at,
        }

    @property
    def is_complete(self) -> bool:
        return bool(self.exercises) and all(e.completed for e in self.exercises)

    @property
    def has_progress(self) -> bool:
        return any(e.completed for e in self.exercises)

    def exercise(self, exercise_id: str) -> Exercise | None:
        return next((e for e in self.exercises if e.id == exercise_id), None)

    def with_exercises(self, exercises: list[Exercise] | tuple[Exercise, ...]) -> Workout:
        return replace(self, exercises=tuple(exercises))

    def fresh_instance(self) -> Workout:
        """Same plan with every exercise pending, as a new workout."""
        return Workout(
            id=new_workout_id(),
            day=self.day,
            title=self.title,
            exercises=tuple(replace(e, completed=False) for e in self.exercises),
        )


@dataclass(frozen=True)
class RotationState:
    """Process-wide rotation record."""

    current_day: int
    install_date: str
    last_sync_at: str | None = None
    rev: int = 1

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> RotationState:
        try:
            day = int(raw.get("current_day") or 1)
        except (TypeError, ValueError):
            day = 1
        return cls(
            current_day=day if 1 <= day <= 7 else 1,
            install_date=str(raw.get("install_date") or "").strip() or now_iso(),
            last_sync_at=_opt_str(raw.get("last_sync_at")),
            rev=int(raw.get("rev") or 1),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "current_day": self.current_day,
            "install_date": self.install_date,
            "last_sync_at": self.last_sync_at,
            "rev": self.rev,
        }

    def bump(self, **changes: Any) -> RotationState:
        return replace(self, rev=self.rev + 1, **changes)


@dataclass(frozen=True)
class StatsSnapshot:
    """Derived consistency figures."""

    total_days: int
    completed_days: int

    @property
    def ratio(self) -> float:
        return round(self.completed_days / max(1, self.total_days), 3)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_days": self.total_days,
            "completed_days": self.completed_days,
            "ratio": self.ratio,
        }
