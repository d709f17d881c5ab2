"""Build configuration for the initrd resolution pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_MODPROBE_SOURCES = (
    Path("/etc/modprobe.conf"),
    Path("/etc/modprobe.conf.local"),
    Path("/etc/modprobe.d"),
)

DIRECTIVE_MARKER = "# SUSE INITRD:"

# Present and supported on every target architecture, so its support flag
# reflects the kernel as a whole.
SENTINEL_MODULE = "ipv6"


@dataclass(frozen=True, slots=True)
class InitrdConfig:
    install_dir: Path = field(default_factory=lambda: Path("lib/mkinitrd"))
    script_dir: Path = field(default_factory=lambda: Path("scripts"))
    stage_file: Path | None = None
    script_suffix: str = ".sh"
    directive_marker: str = DIRECTIVE_MARKER
    modprobe_sources: tuple[Path, ...] = DEFAULT_MODPROBE_SOURCES
    sentinel_module: str = SENTINEL_MODULE
    root_dir: Path = field(default_factory=lambda: Path("/"))

    @property
    def stages_path(self) -> Path:
        if self.stage_file is not None:
            return self.stage_file
        return self.install_dir / "stages"


def expand_sources(sources: tuple[Path, ...] | list[Path]) -> list[Path]:
    """Expand directory entries into their sorted files, keeping order otherwise."""
    expanded: list[Path] = []
    for source in sources:
        if source.is_dir():
            expanded.extend(sorted(path for path in source.iterdir() if path.is_file()))
        else:
            expanded.append(source)
    return expanded
