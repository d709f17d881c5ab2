"""Typed initrd error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across API surfaces."""

    VALIDATION = "E_VALIDATION"
    CYCLIC_DEPENDENCY = "E_CYCLIC_DEPENDENCY"
    MODULE_QUERY = "E_MODULE_QUERY"
    MODULE_INSTALL = "E_MODULE_INSTALL"
    BACKEND_EXECUTION = "E_BACKEND_EXECUTION"


class InitrdError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ValidationError(InitrdError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class CyclicDependencyError(InitrdError):
    """Raised when script capability dependencies form a cycle."""

    cycle: tuple[str, ...]

    def __init__(
        self,
        section: str,
        cycle: Sequence[str],
        *,
        hint: str | None = None,
    ) -> None:
        self.cycle = tuple(cycle)
        super().__init__(
            f"Cyclic dependency between {section} scripts: {' -> '.join(self.cycle)}",
            code=ErrorCode.CYCLIC_DEPENDENCY,
            hint=hint or "Break the cycle by removing one #%depends: entry.",
            context={"section": section, "cycle": " ".join(self.cycle)},
        )


class ModuleQueryError(InitrdError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.MODULE_QUERY, hint=hint, context=context)


class ModuleInstallError(InitrdError):
    """Fatal module installation failure; aborts the image build."""

    exit_status: int

    def __init__(
        self,
        message: str,
        *,
        exit_status: int,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.MODULE_INSTALL, hint=hint, context=context)
        self.exit_status = exit_status


class BackendExecutionError(InitrdError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.BACKEND_EXECUTION, hint=hint, context=context)


class InitrdWarning(UserWarning):
    """Base class for non-fatal diagnostics; resolution continues."""


class InvalidStageWarning(InitrdWarning):
    """A script declares a stage that is not in the stage table."""


class UnresolvedDependencyWarning(InitrdWarning):
    """A script depends on a capability nothing in its section provides."""


class MalformedDirectiveWarning(InitrdWarning):
    """A ``REQUIRES`` directive line is missing a module or requirement."""


class ModuleResolutionWarning(InitrdWarning):
    """A module or declared requirement could not be resolved."""


__all__ = [
    "BackendExecutionError",
    "CyclicDependencyError",
    "ErrorCode",
    "InitrdError",
    "InitrdWarning",
    "InvalidStageWarning",
    "MalformedDirectiveWarning",
    "ModuleInstallError",
    "ModuleQueryError",
    "ModuleResolutionWarning",
    "UnresolvedDependencyWarning",
    "ValidationError",
]
