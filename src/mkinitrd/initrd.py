"""Initrd build pipeline: script order, module closure, module install."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import InitrdConfig
from .kmod import (
    KernelSupportProbe,
    KmodQuery,
    ModuleDependencyDB,
    ModuleInstaller,
    ModuleQuery,
    ModuleResolver,
)
from .manifest import ModuleManifest
from .observability import StructuredLogger
from .scripts import DependencyResolver, ScriptCatalog, ScriptOrder
from .stages import StageTable


@dataclass(slots=True)
class Initrd:
    """Owns configuration, the module database collaborator, and the log."""

    config: InitrdConfig = field(default_factory=InitrdConfig)
    query: ModuleQuery = field(default_factory=KmodQuery)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    _depdb: ModuleDependencyDB = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._depdb = ModuleDependencyDB(marker=self.config.directive_marker, logger=self.logger)

    @property
    def depdb(self) -> ModuleDependencyDB:
        """Declared dependencies, loaded on first access and cached."""
        return self._depdb.load(self.config.modprobe_sources)

    def stages(self) -> StageTable:
        return StageTable.load(self.config.stages_path)

    def catalog(self) -> ScriptCatalog:
        return ScriptCatalog.scan(
            self.config.script_dir,
            self.stages(),
            suffix=self.config.script_suffix,
            logger=self.logger,
        )

    def order_scripts(self, catalog: ScriptCatalog | None = None) -> ScriptOrder:
        resolver = DependencyResolver(catalog or self.catalog(), logger=self.logger)
        return resolver.resolve()

    def requested_modules(self, order: ScriptOrder) -> list[str]:
        """Module names declared by boot scripts, in execution order."""
        names: list[str] = []
        for entry in order.boot:
            for module in entry.script.modules:
                if module not in names:
                    names.append(module)
                    self.logger.log(
                        operation="gather_modules",
                        section="boot",
                        script=entry.script.name,
                        module=module,
                        message=f"{entry.script.name}: {module}",
                    )
        return names

    def resolve_modules(self, kernel_version: str, requested: list[str]) -> ModuleManifest:
        probe = KernelSupportProbe(
            self.query,
            sentinel=self.config.sentinel_module,
            logger=self.logger,
        )
        resolver = ModuleResolver(self.query, self.depdb, probe, logger=self.logger)
        return resolver.resolve(kernel_version, requested)

    def install_modules(
        self,
        manifest: ModuleManifest,
        destination: str | Path,
        *,
        map_file: str | Path | None = None,
    ) -> list[Path]:
        installer = ModuleInstaller(root_dir=self.config.root_dir, logger=self.logger)
        return installer.install(manifest, destination, map_file=map_file)
