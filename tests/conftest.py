"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mkinitrd.errors import ModuleQueryError
from mkinitrd.stages import StageTable

KVER = "6.4.0-150600.21-default"


def kpath(*parts: str) -> str:
    """Absolute module path under the test kernel's module tree."""
    return "/".join(("/lib/modules", KVER, "kernel", *parts))


@dataclass
class FakeModuleQuery:
    """In-memory module database keyed by module name."""

    depends: dict[str, tuple[str, ...]] = field(default_factory=dict)
    filenames: dict[str, str] = field(default_factory=dict)
    supported_answer: str | None = "yes"
    calls: list[tuple[str, ...]] = field(default_factory=list)

    def supported(self, kernel_version: str, module: str) -> str:
        self.calls.append(("supported", kernel_version, module))
        if self.supported_answer is None:
            raise ModuleQueryError("modinfo returned with an error.")
        return self.supported_answer

    def show_depends(
        self,
        kernel_version: str,
        module: str,
        *,
        allow_unsupported: bool = False,
    ) -> tuple[str, ...]:
        self.calls.append(("show_depends", kernel_version, module, str(allow_unsupported)))
        return self.depends.get(module, ())

    def filename(self, kernel_version: str, module: str) -> str | None:
        self.calls.append(("filename", kernel_version, module))
        return self.filenames.get(module)


class FakeRunResult:
    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


@pytest.fixture
def fake_query() -> FakeModuleQuery:
    return FakeModuleQuery()


@pytest.fixture
def stages() -> StageTable:
    return StageTable.from_names("boot", "device", "udev", "network", "filesystem")


@pytest.fixture
def write_script(tmp_path: Path) -> Callable[..., Path]:
    """Write ``<filename>`` into ``tmp_path/scripts`` with the given marker lines."""
    script_dir = tmp_path / "scripts"
    script_dir.mkdir(exist_ok=True)

    def _write(filename: str, *markers: str) -> Path:
        path = script_dir / filename
        body = ["#!/bin/bash", *markers, "echo running"]
        path.write_text("\n".join(body) + "\n", encoding="utf-8")
        return path

    return _write
