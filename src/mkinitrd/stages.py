"""Stage table: coarse, ordered execution phases for initrd scripts."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from mkinitrd.errors import ValidationError


@dataclass(frozen=True, slots=True)
class Stage:
    name: str
    ordinal: int


@dataclass(frozen=True, slots=True)
class StageTable:
    """Stages in declaration order; ordinals are dense and zero-based."""

    stages: tuple[Stage, ...] = ()
    _by_name: dict[str, Stage] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name: dict[str, Stage] = {}
        for index, stage in enumerate(self.stages):
            if stage.ordinal != index:
                raise ValidationError(
                    "Stage ordinals must be dense and follow declaration order.",
                    context={"stage": stage.name, "ordinal": str(stage.ordinal)},
                )
            if stage.name in by_name:
                raise ValidationError(
                    f"Stage {stage.name!r} is declared twice.",
                    hint="Remove the duplicate line from the stage file.",
                    context={"stage": stage.name},
                )
            by_name[stage.name] = stage
        object.__setattr__(self, "_by_name", by_name)

    @classmethod
    def from_names(cls, *names: str) -> StageTable:
        return cls(tuple(Stage(name=name, ordinal=index) for index, name in enumerate(names)))

    @classmethod
    def parse(cls, raw: str) -> StageTable:
        """Parse a stage file: one name per line, anything after it is a comment."""
        names: list[str] = []
        for line in raw.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            names.append(stripped.split()[0])
        return cls.from_names(*names)

    @classmethod
    def load(cls, path: str | Path) -> StageTable:
        stage_path = Path(path)
        try:
            raw = stage_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(
                "Cannot read stage file.",
                hint=str(exc),
                context={"path": str(stage_path)},
            ) from exc
        return cls.parse(raw)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Stage]:
        return iter(self.stages)

    def __len__(self) -> int:
        return len(self.stages)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    @property
    def last(self) -> Stage:
        if not self.stages:
            raise ValidationError("Stage table is empty.")
        return self.stages[-1]

    def ordinal(self, name: str) -> int:
        stage = self._by_name.get(name)
        if stage is None:
            raise ValidationError(
                f"Unknown stage {name!r}.",
                context={"stage": name, "known": " ".join(self.names)},
            )
        return stage.ordinal
