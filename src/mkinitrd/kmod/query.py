"""Module database collaborator backed by kmod's ``modprobe`` and ``modinfo``.

Every query runs synchronously and without a timeout; a hung tool hangs
the build.
"""

from __future__ import annotations

import re
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from mkinitrd.errors import ModuleQueryError

_INSMOD_RE = re.compile(r"^insmod\s+(\S+)")

Runner = Callable[..., Any]


class ModuleQuery(Protocol):
    def supported(self, kernel_version: str, module: str) -> str:
        """Return the module's ``supported`` field; raise ModuleQueryError on failure."""

    def show_depends(
        self,
        kernel_version: str,
        module: str,
        *,
        allow_unsupported: bool = False,
    ) -> tuple[str, ...]:
        """Return the module's file and its dependencies, load order first."""

    def filename(self, kernel_version: str, module: str) -> str | None:
        """Return the module's file path, or None if it cannot be found."""


@dataclass(slots=True)
class KmodQuery:
    modprobe: str = "/sbin/modprobe"
    modinfo: str = "/sbin/modinfo"
    run: Runner = field(default=subprocess.run)

    def supported(self, kernel_version: str, module: str) -> str:
        cmd = [self.modinfo, "-k", kernel_version, "-F", "supported", module]
        result = self._run(cmd)
        if result.returncode != 0:
            raise ModuleQueryError(
                "modinfo returned with an error.",
                context={
                    "operation": "supported",
                    "module": module,
                    "kernel_version": kernel_version,
                    "returncode": str(result.returncode),
                    "stderr": result.stderr[:2000] if result.stderr else "",
                },
            )
        return result.stdout.strip()

    def show_depends(
        self,
        kernel_version: str,
        module: str,
        *,
        allow_unsupported: bool = False,
    ) -> tuple[str, ...]:
        # -C /dev/null keeps install lines from the local config out of the answer
        cmd = [
            self.modprobe,
            "-C",
            "/dev/null",
            "--set-version",
            kernel_version,
            "--ignore-install",
            "--show-depends",
            module,
        ]
        if allow_unsupported:
            cmd.append("--allow-unsupported-modules")
        result = self._run(cmd)
        if result.returncode != 0:
            return ()
        return parse_show_depends(result.stdout)

    def filename(self, kernel_version: str, module: str) -> str | None:
        cmd = [self.modinfo, "-k", kernel_version, "-F", "filename", module]
        result = self._run(cmd)
        if result.returncode != 0:
            return None
        path = result.stdout.strip()
        # built-in modules report "(builtin)" instead of a file
        if not path.startswith("/"):
            return None
        return path

    def _run(self, cmd: list[str]) -> Any:
        try:
            return self.run(cmd, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise ModuleQueryError(
                f"Cannot execute {cmd[0]}.",
                hint="Install kmod or point mkinitrd at its modprobe/modinfo binaries.",
                context={"command": " ".join(cmd)},
            ) from exc


def parse_show_depends(output: str) -> tuple[str, ...]:
    """Extract module paths from ``insmod <path> [options]`` lines."""
    paths: list[str] = []
    for line in output.splitlines():
        match = _INSMOD_RE.match(line.strip())
        if match and match.group(1) not in paths:
            paths.append(match.group(1))
    return tuple(paths)
