"""Resolved module set, manifest export, and summary helpers."""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import cbor2

from mkinitrd.errors import ValidationError
from mkinitrd.names import module_name


@dataclass(slots=True)
class ResolvedModuleSet:
    """Append-only, duplicate-free module paths in discovery order."""

    _paths: list[str] = field(default_factory=list, init=False)
    _seen: set[str] = field(default_factory=set, init=False)

    def add(self, path: str) -> bool:
        if path in self._seen:
            return False
        self._seen.add(path)
        self._paths.append(path)
        return True

    def __contains__(self, path: object) -> bool:
        return path in self._seen

    def __len__(self) -> int:
        return len(self._paths)

    def finalize(self, kernel_version: str) -> ModuleManifest:
        return ModuleManifest(kernel_version=kernel_version, paths=tuple(self._paths))


@dataclass(frozen=True, slots=True)
class ModuleManifest:
    kernel_version: str
    paths: tuple[str, ...] = ()
    schema_version: int = 1

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def __contains__(self, item: object) -> bool:
        return item in self.paths or item in self.names()

    def names(self) -> tuple[str, ...]:
        return tuple(module_name(path) for path in self.paths)

    def summary(self) -> str:
        return "Kernel Modules:\t" + " ".join(self.names())

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    @classmethod
    def from_json(cls, raw: str) -> ModuleManifest:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError("Invalid module manifest JSON.", hint=str(exc)) from exc
        if not isinstance(payload, dict):
            raise ValidationError("Invalid module manifest payload type.")
        kernel_version = payload.get("kernel_version")
        modules = payload.get("modules")
        if not isinstance(kernel_version, str) or not kernel_version:
            raise ValidationError("Invalid module manifest `kernel_version` value.")
        if not isinstance(modules, list) or not all(isinstance(item, str) for item in modules):
            raise ValidationError("Invalid module manifest `modules` value.")
        return cls(
            kernel_version=kernel_version,
            paths=tuple(modules),
            schema_version=int(payload.get("schema_version", 1)),
        )

    def _payload(self) -> dict[str, object]:
        # Module order is the depmod input order and must be preserved.
        return {
            "schema_version": self.schema_version,
            "kernel_version": self.kernel_version,
            "modules": list(self.paths),
        }
