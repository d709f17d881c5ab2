"""Kernel module resolution for the initrd."""

from .depdb import ModuleDependencyDB, parse_directive
from .install import ModuleInstaller
from .probe import KernelSupportProbe
from .query import KmodQuery, ModuleQuery, parse_show_depends
from .resolve import ModuleResolver, apply_exclusions

__all__ = [
    "KernelSupportProbe",
    "KmodQuery",
    "ModuleDependencyDB",
    "ModuleInstaller",
    "ModuleQuery",
    "ModuleResolver",
    "apply_exclusions",
    "parse_directive",
    "parse_show_depends",
]
