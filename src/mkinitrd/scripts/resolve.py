"""Script leveling: stage floors raised by capability dependencies.

Setup scripts count up from ``ordinal * 10 + 1`` and boot scripts count down
from ``91 - ordinal * 10``, so both sections stay distinct once rendered with
a two-digit prefix.  A script's level must exceed the level of every script
providing one of its dependencies.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field

from mkinitrd.errors import CyclicDependencyError, UnresolvedDependencyWarning
from mkinitrd.models import SECTIONS, LeveledScript, Script, Section, UnresolvedDependency
from mkinitrd.observability import StructuredLogger
from mkinitrd.scripts.catalog import ScriptCatalog


def base_level(section: Section, ordinal: int) -> int:
    if section == "setup":
        return ordinal * 10 + 1
    return 91 - ordinal * 10


@dataclass(frozen=True, slots=True)
class ScriptOrder:
    setup: tuple[LeveledScript, ...] = ()
    boot: tuple[LeveledScript, ...] = ()
    unresolved: tuple[UnresolvedDependency, ...] = ()

    def section(self, section: Section) -> tuple[LeveledScript, ...]:
        return self.setup if section == "setup" else self.boot

    def level_of(self, section: Section, name: str) -> int:
        for entry in self.section(section):
            if entry.script.name == name:
                return entry.level
        raise KeyError(f"{section}/{name}")

    def listing(self) -> list[str]:
        return [entry.install_name for entry in (*self.setup, *self.boot)]


@dataclass(slots=True)
class DependencyResolver:
    catalog: ScriptCatalog
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    _levels: dict[tuple[Section, str], int] = field(default_factory=dict, init=False)
    _visiting: list[str] = field(default_factory=list, init=False)
    _unresolved: list[UnresolvedDependency] = field(default_factory=list, init=False)

    def resolve(self) -> ScriptOrder:
        self._levels.clear()
        self._unresolved.clear()
        ordered: dict[Section, tuple[LeveledScript, ...]] = {}
        for section in SECTIONS:
            scripts = self.catalog.section(section)
            provided_by = self.catalog.providers(section)
            for script in scripts:
                self._resolve_script(script, provided_by)
            leveled = [LeveledScript(script, self._levels[script.key]) for script in scripts]
            # sorted() is stable, so equal levels keep scan order
            ordered[section] = tuple(sorted(leveled, key=lambda entry: entry.level))
        return ScriptOrder(
            setup=ordered["setup"],
            boot=ordered["boot"],
            unresolved=tuple(self._unresolved),
        )

    def _resolve_script(self, script: Script, provided_by: dict[str, list[Script]]) -> int:
        cached = self._levels.get(script.key)
        if cached is not None:
            return cached
        if script.name in self._visiting:
            start = self._visiting.index(script.name)
            raise CyclicDependencyError(script.section, [*self._visiting[start:], script.name])

        self._visiting.append(script.name)
        try:
            ordinal = self.catalog.stages.ordinal(script.stage)
            level = base_level(script.section, ordinal)
            for capability in script.depends:
                providers = [p for p in provided_by.get(capability, ()) if p.key != script.key]
                if not providers:
                    self._report_unresolved(script, capability)
                    continue
                for provider in providers:
                    provider_level = self._resolve_script(provider, provided_by)
                    if level <= provider_level:
                        level = provider_level + 1
        finally:
            self._visiting.pop()

        self._levels[script.key] = level
        self.logger.log(
            operation="resolve",
            section=script.section,
            script=script.name,
            message=f"{script.name} ({level})",
            extra={"level": level},
        )
        return level

    def _report_unresolved(self, script: Script, capability: str) -> None:
        self._unresolved.append(
            UnresolvedDependency(section=script.section, script=script.name, capability=capability)
        )
        message = f"{script.name}: Unresolved dependency {capability!r}"
        warnings.warn(message, UnresolvedDependencyWarning, stacklevel=4)
        self.logger.log(
            operation="resolve",
            section=script.section,
            script=script.name,
            level="warning",
            message=message,
            extra={"capability": capability},
        )
