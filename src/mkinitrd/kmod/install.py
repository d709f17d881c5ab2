"""Copy resolved modules into the initrd staging tree and build its map file."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mkinitrd.errors import BackendExecutionError, ModuleInstallError
from mkinitrd.kmod.query import Runner
from mkinitrd.manifest import ModuleManifest
from mkinitrd.observability import StructuredLogger

EXIT_COPY_FAILED = 6
EXIT_MODULE_MISSING = 9
EXIT_NO_MODULES = 10


@dataclass(slots=True)
class ModuleInstaller:
    root_dir: Path = field(default_factory=lambda: Path("/"))
    depmod: str = "/sbin/depmod"
    run: Runner = field(default=subprocess.run)
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def install(
        self,
        manifest: ModuleManifest,
        destination: str | Path,
        *,
        map_file: str | Path | None = None,
    ) -> list[Path]:
        dest = Path(destination)
        installed: list[Path] = []
        for module in manifest:
            relative = module.lstrip("/")
            source = self.root_dir / relative
            if not os.access(source, os.R_OK):
                shutil.rmtree(dest, ignore_errors=True)
                raise ModuleInstallError(
                    f"Module {module} not found.",
                    exit_status=EXIT_MODULE_MISSING,
                    context={"module": module, "root_dir": str(self.root_dir)},
                )
            target = dest / relative
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
            except OSError as exc:
                shutil.rmtree(dest, ignore_errors=True)
                raise ModuleInstallError(
                    f"Failed to add module {module}.",
                    exit_status=EXIT_COPY_FAILED,
                    hint=str(exc),
                    context={"module": module, "destination": str(dest)},
                ) from exc
            installed.append(target)
            self.logger.log(
                operation="install_module",
                module=module,
                message="Copied module.",
                extra={"target": str(target)},
            )

        if not len(manifest):
            return installed

        modules_dir = dest / "lib" / "modules" / manifest.kernel_version
        if not modules_dir.is_dir():
            raise ModuleInstallError(
                "No modules have been installed.",
                exit_status=EXIT_NO_MODULES,
                hint="Module paths must live under /lib/modules/<kernel version>.",
                context={"kernel_version": manifest.kernel_version, "destination": str(dest)},
            )
        self._run_depmod(dest, manifest.kernel_version, map_file)
        return installed

    def _run_depmod(self, dest: Path, kernel_version: str, map_file: str | Path | None) -> None:
        cmd = [self.depmod, "-b", str(dest), "-e"]
        if map_file is not None:
            cmd.extend(["-F", str(map_file)])
        cmd.append(kernel_version)
        try:
            result: Any = self.run(cmd, cwd=str(dest), capture_output=True, text=True, check=False)
        except OSError as exc:
            raise BackendExecutionError(
                "Cannot execute depmod.",
                hint=str(exc),
                context={"operation": "depmod", "command": " ".join(cmd)},
            ) from exc
        if result.returncode != 0:
            raise BackendExecutionError(
                "depmod failed.",
                hint="Check depmod output for details.",
                context={
                    "operation": "depmod",
                    "returncode": str(result.returncode),
                    "stderr": result.stderr[:2000] if result.stderr else "",
                    "command": " ".join(cmd),
                },
            )
        self.logger.log(
            operation="depmod",
            message="Generated module dependency files.",
            extra={"kernel_version": kernel_version, "destination": str(dest)},
        )
