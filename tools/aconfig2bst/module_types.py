"""Per-module-type handler registry for the aconfig Soong module types.

Each handler takes the evaluated properties of a parsed module and builds a
typed description of it. Property problems raise PropertyError; the loader
collects those per module.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from . import syntax
from .evaluator import get_bool, get_string, get_string_list


class PropertyError(Exception):
    def __init__(self, module_name, prop, message):
        self.module_name = module_name
        self.prop = prop
        super().__init__(f"module {module_name!r}: {prop}: {message}")


@dataclass
class AconfigModule:
    name: str
    module_dir: str  # relative to the tree root
    pos: Optional[syntax.Pos] = None


@dataclass
class ValuesModule(AconfigModule):
    package: str = ""
    srcs: List[str] = field(default_factory=list)


@dataclass
class ValueSetModule(AconfigModule):
    values: List[str] = field(default_factory=list)
    srcs: List[str] = field(default_factory=list)


@dataclass
class DeclarationsModule(AconfigModule):
    package: str = ""
    container: str = ""
    srcs: List[str] = field(default_factory=list)
    exportable: bool = False


class ModuleHandler:
    """Base class for module type handlers."""

    MODULE_TYPES: List[str] = []

    def can_handle(self, module_type: str) -> bool:
        return module_type in self.MODULE_TYPES

    def convert(self, name: str, props: Dict[str, Any], module_dir: str,
                pos: Optional[syntax.Pos] = None) -> AconfigModule:
        raise NotImplementedError


class ValuesHandler(ModuleHandler):
    MODULE_TYPES = ["aconfig_values"]

    def convert(self, name, props, module_dir, pos=None):
        package = get_string(props, "package")
        if not package:
            raise PropertyError(name, "package", "missing package property")
        return ValuesModule(
            name=name,
            module_dir=module_dir,
            pos=pos,
            package=package,
            srcs=get_string_list(props, "srcs"),
        )


class ValueSetHandler(ModuleHandler):
    MODULE_TYPES = ["aconfig_value_set"]

    def convert(self, name, props, module_dir, pos=None):
        return ValueSetModule(
            name=name,
            module_dir=module_dir,
            pos=pos,
            values=get_string_list(props, "values"),
            srcs=get_string_list(props, "srcs"),
        )


class DeclarationsHandler(ModuleHandler):
    MODULE_TYPES = ["aconfig_declarations"]

    def convert(self, name, props, module_dir, pos=None):
        srcs = get_string_list(props, "srcs")
        if not srcs:
            raise PropertyError(name, "srcs", "missing source files")

        problems = []
        package = get_string(props, "package")
        if not package:
            problems.append(("package", "missing package property"))
        container = get_string(props, "container")
        if not container:
            problems.append(("container", "missing container property"))
        if problems:
            raise PropertyError(name, ", ".join(p for p, _ in problems),
                                "; ".join(m for _, m in problems))

        # system_ext flags live in the system container
        if container == "system_ext":
            container = "system"

        return DeclarationsModule(
            name=name,
            module_dir=module_dir,
            pos=pos,
            package=package,
            container=container,
            srcs=srcs,
            exportable=get_bool(props, "exportable"),
        )


_HANDLERS: List[ModuleHandler] = [
    ValuesHandler(),
    ValueSetHandler(),
    DeclarationsHandler(),
]


def get_handler(module_type: str) -> Optional[ModuleHandler]:
    """Look up the handler for a given module type."""
    for handler in _HANDLERS:
        if handler.can_handle(module_type):
            return handler
    return None


def supported_types() -> List[str]:
    """Return list of all supported module types."""
    types = []
    for handler in _HANDLERS:
        types.extend(handler.MODULE_TYPES)
    return types
