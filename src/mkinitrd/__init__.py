"""Public package entrypoint for the initrd script and module resolver."""

from .config import InitrdConfig
from .errors import (
    BackendExecutionError,
    CyclicDependencyError,
    InitrdError,
    InitrdWarning,
    ModuleInstallError,
    ModuleQueryError,
    ValidationError,
)
from .initrd import Initrd
from .manifest import ModuleManifest, ResolvedModuleSet
from .models import LeveledScript, Script, UnresolvedDependency
from .observability import StructuredLogger
from .scripts import DependencyResolver, ScriptCatalog, ScriptOrder
from .stages import Stage, StageTable

__all__ = [
    "BackendExecutionError",
    "CyclicDependencyError",
    "DependencyResolver",
    "Initrd",
    "InitrdConfig",
    "InitrdError",
    "InitrdWarning",
    "LeveledScript",
    "ModuleInstallError",
    "ModuleManifest",
    "ModuleQueryError",
    "ResolvedModuleSet",
    "Script",
    "ScriptCatalog",
    "ScriptOrder",
    "Stage",
    "StageTable",
    "StructuredLogger",
    "UnresolvedDependency",
    "ValidationError",
]
