"""Setup/boot script cataloging and ordering."""

from .catalog import ScriptCatalog, split_script_name
from .resolve import DependencyResolver, ScriptOrder, base_level

__all__ = [
    "DependencyResolver",
    "ScriptCatalog",
    "ScriptOrder",
    "base_level",
    "split_script_name",
]
