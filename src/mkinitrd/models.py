"""Core typed dataclasses for initrd scripts and their resolution results."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

Section = Literal["setup", "boot"]

SECTIONS: tuple[Section, ...] = ("setup", "boot")


@dataclass(frozen=True, slots=True)
class Script:
    section: Section
    name: str
    path: Path
    stage: str
    depends: tuple[str, ...] = ()
    provides: tuple[str, ...] = ()
    modules: tuple[str, ...] = ()

    @property
    def key(self) -> tuple[Section, str]:
        return (self.section, self.name)


@dataclass(frozen=True, slots=True)
class InvalidScript:
    """A candidate script rejected during scanning."""

    path: Path
    name: str
    reason: str


@dataclass(frozen=True, slots=True)
class UnresolvedDependency:
    section: Section
    script: str
    capability: str


@dataclass(frozen=True, slots=True)
class LeveledScript:
    script: Script
    level: int

    @property
    def install_name(self) -> str:
        """Relative install path, e.g. ``boot/04-udev.sh``."""
        return f"{self.script.section}/{self.level:02d}-{self.script.name}{self.script.path.suffix}"
