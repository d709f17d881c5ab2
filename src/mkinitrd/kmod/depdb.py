"""Declared module dependencies from modprobe configuration comments.

``install`` lines in modprobe configuration can pull in modules that
``modprobe --show-depends`` never reports.  Such dependencies are declared
out-of-band with a comment::

    # SUSE INITRD: foo REQUIRES bar

Declarations for the same module accumulate across all sources.
"""

from __future__ import annotations

import warnings
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from mkinitrd.config import DIRECTIVE_MARKER, expand_sources
from mkinitrd.errors import MalformedDirectiveWarning
from mkinitrd.names import module_name
from mkinitrd.observability import StructuredLogger

REQUIRES = "REQUIRES"


@dataclass(slots=True)
class ModuleDependencyDB:
    marker: str = DIRECTIVE_MARKER
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    _requirements: dict[str, list[str]] = field(default_factory=dict, init=False)
    _loaded: bool = field(default=False, init=False)

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self, sources: Iterable[str | Path]) -> ModuleDependencyDB:
        """Read every readable source once; later calls are no-ops."""
        if self._loaded:
            return self
        for source in expand_sources([Path(item) for item in sources]):
            try:
                raw = source.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            self.parse(raw, source=str(source))
        self._loaded = True
        return self

    def parse(self, raw: str, *, source: str = "<string>") -> None:
        for lineno, line in enumerate(raw.splitlines(), start=1):
            if not line.startswith(self.marker):
                continue
            parsed = parse_directive(line[len(self.marker) :])
            if parsed is None:
                message = f"Requirement line {line!r} in file {source!r} is invalid."
                warnings.warn(message, MalformedDirectiveWarning, stacklevel=2)
                self.logger.log(
                    operation="load_directives",
                    level="warning",
                    message=message,
                    extra={"source": source, "line": lineno},
                )
                continue
            module, requirements = parsed
            self.add(module, *requirements)

    def add(self, module: str, *requirements: str) -> None:
        known = self._requirements.setdefault(module_name(module), [])
        for requirement in requirements:
            name = module_name(requirement)
            if name not in known:
                known.append(name)

    def requirements(self, module: str) -> tuple[str, ...]:
        return tuple(self._requirements.get(module_name(module), ()))

    def as_dict(self) -> dict[str, list[str]]:
        return {module: list(reqs) for module, reqs in self._requirements.items()}

    def __contains__(self, module: object) -> bool:
        return isinstance(module, str) and module_name(module) in self._requirements

    def __len__(self) -> int:
        return len(self._requirements)


def parse_directive(text: str) -> tuple[str, tuple[str, ...]] | None:
    """Parse ``<module> REQUIRES <requirement...>``; None if either side is missing."""
    tokens = text.split()
    if REQUIRES not in tokens:
        return None
    index = tokens.index(REQUIRES)
    head, tail = tokens[:index], tokens[index + 1 :]
    if len(head) != 1 or not tail:
        return None
    return head[0], tuple(tail)
