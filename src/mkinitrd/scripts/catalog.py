"""Script catalog: scan a script directory and read the embedded markers.

Scripts are named ``<section>-<name>.sh`` where the section is ``setup`` or
``boot``.  Metadata lives in line-anchored comment markers::

    #%stage: filesystem
    #%depends: udev network
    #%provides: rootfs
    #%modules: ext4 jbd2
    #%udevmodules: usb-storage

Nothing is executed while scanning.
"""

from __future__ import annotations

import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path

from mkinitrd.errors import InvalidStageWarning, ValidationError
from mkinitrd.models import SECTIONS, InvalidScript, Script, Section
from mkinitrd.observability import StructuredLogger
from mkinitrd.stages import StageTable

STAGE_MARKER = re.compile(r"^#%stage:\s*(.*)$")
DEPENDS_MARKER = re.compile(r"^#%depends:\s*(.*)$")
PROVIDES_MARKER = re.compile(r"^#%provides:\s*(.*)$")
MODULES_MARKER = re.compile(r"^#%(?:udev)?modules:\s*(.*)$")


@dataclass(slots=True)
class ScriptCatalog:
    stages: StageTable
    scripts: list[Script] = field(default_factory=list)
    invalid: list[InvalidScript] = field(default_factory=list)

    @classmethod
    def scan(
        cls,
        directory: str | Path,
        stages: StageTable,
        *,
        suffix: str = ".sh",
        logger: StructuredLogger | None = None,
    ) -> ScriptCatalog:
        root = Path(directory)
        if not root.is_dir():
            raise ValidationError(
                "Script directory does not exist.",
                context={"path": str(root), "operation": "scan"},
            )
        catalog = cls(stages=stages)
        for path in sorted(root.iterdir()):
            if not path.is_file() or not path.name.endswith(suffix):
                continue
            parsed = split_script_name(path.name, suffix=suffix)
            if parsed is None:
                continue
            section, name = parsed
            catalog._add(path, section, name, logger)
        return catalog

    def _add(
        self,
        path: Path,
        section: Section,
        name: str,
        logger: StructuredLogger | None,
    ) -> None:
        stage: str | None = None
        depends: tuple[str, ...] = ()
        provides: list[str] = [name]
        modules: list[str] = []

        for line in path.read_text(encoding="utf-8", errors="replace").splitlines():
            if match := STAGE_MARKER.match(line):
                stage = match.group(1).strip()
            elif match := DEPENDS_MARKER.match(line):
                depends = tuple(match.group(1).split())
            elif match := PROVIDES_MARKER.match(line):
                provides.extend(match.group(1).split())
            elif match := MODULES_MARKER.match(line):
                modules.extend(match.group(1).split())

        if stage is None:
            stage = self.stages.last.name
        elif stage not in self.stages:
            reason = f"Invalid stage {stage!r}"
            self.invalid.append(InvalidScript(path=path, name=name, reason=reason))
            warnings.warn(f"{name}: {reason}", InvalidStageWarning, stacklevel=3)
            if logger is not None:
                logger.log(
                    operation="scan",
                    section=section,
                    script=name,
                    level="warning",
                    message=reason,
                    extra={"path": str(path)},
                )
            return

        script = Script(
            section=section,
            name=name,
            path=path,
            stage=stage,
            depends=depends,
            provides=tuple(dict.fromkeys(provides)),
            modules=tuple(dict.fromkeys(modules)),
        )
        self.scripts.append(script)
        if logger is not None:
            logger.log(
                operation="scan",
                section=section,
                script=name,
                message="Scanned script.",
                extra={
                    "stage": stage,
                    "depends": list(script.depends),
                    "provides": list(script.provides),
                },
            )

    def section(self, section: Section) -> list[Script]:
        return [script for script in self.scripts if script.section == section]

    def providers(self, section: Section) -> dict[str, list[Script]]:
        """Map each capability to the scripts providing it, in scan order."""
        provided_by: dict[str, list[Script]] = {}
        for script in self.section(section):
            for capability in script.provides:
                provided_by.setdefault(capability, []).append(script)
        return provided_by


def split_script_name(filename: str, *, suffix: str = ".sh") -> tuple[Section, str] | None:
    """Return ``(section, name)`` for ``<section>-<name><suffix>``, else None."""
    if not filename.endswith(suffix):
        return None
    stem = filename[: -len(suffix)]
    section, sep, name = stem.partition("-")
    if not sep or not name or section not in SECTIONS:
        return None
    return section, name  # type: ignore[return-value]
