"""Kernel module closure: modprobe dependencies merged with declared ones."""

from __future__ import annotations

import warnings
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from mkinitrd.errors import ModuleResolutionWarning
from mkinitrd.kmod.depdb import ModuleDependencyDB
from mkinitrd.kmod.probe import KernelSupportProbe
from mkinitrd.kmod.query import ModuleQuery
from mkinitrd.manifest import ModuleManifest, ResolvedModuleSet
from mkinitrd.names import module_name, strip_module_suffix
from mkinitrd.observability import StructuredLogger


def apply_exclusions(requested: Iterable[str]) -> list[str]:
    """Drop ``-name`` entries and every entry they exclude; dedupe the rest.

    ``["ext4", "-usb-storage", "usb-storage", "ext4"]`` -> ``["ext4"]``.
    """
    entries = [entry for entry in requested if entry]
    excluded = {strip_module_suffix(entry[1:]) for entry in entries if entry.startswith("-")}
    kept: list[str] = []
    for entry in entries:
        if entry.startswith("-"):
            continue
        name = strip_module_suffix(entry)
        if name in excluded or name in kept:
            continue
        kept.append(name)
    return kept


@dataclass(slots=True)
class ModuleResolver:
    query: ModuleQuery
    depdb: ModuleDependencyDB
    probe: KernelSupportProbe
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def resolve(self, kernel_version: str, requested: Sequence[str]) -> ModuleManifest:
        allow_unsupported = not self.probe.is_supported(kernel_version)
        resolved = ResolvedModuleSet()

        for name in apply_exclusions(requested):
            paths = self.query.show_depends(
                kernel_version,
                name,
                allow_unsupported=allow_unsupported,
            )
            if not paths:
                self._warn(f"no dependencies for kernel module {name!r} found.", module=name)
                continue
            for path in paths:
                if resolved.add(path):
                    self._add_declared(kernel_version, path, resolved)

        manifest = resolved.finalize(kernel_version)
        self.logger.log(
            operation="resolve_modules",
            message=manifest.summary(),
            extra={
                "kernel_version": kernel_version,
                "allow_unsupported": allow_unsupported,
                "count": len(manifest),
            },
        )
        return manifest

    def _add_declared(self, kernel_version: str, path: str, resolved: ResolvedModuleSet) -> None:
        """Append declared requirements of *path* depth-first."""
        name = module_name(path)
        for requirement in self.depdb.requirements(name):
            filename = self.query.filename(kernel_version, requirement)
            if filename is None:
                self._warn(
                    f"Ignoring additional requirement {name} REQUIRES {requirement}",
                    module=name,
                )
                continue
            if resolved.add(filename):
                self._add_declared(kernel_version, filename, resolved)

    def _warn(self, message: str, *, module: str) -> None:
        warnings.warn(message, ModuleResolutionWarning, stacklevel=3)
        self.logger.log(
            operation="resolve_modules",
            module=module,
            level="warning",
            message=message,
        )
