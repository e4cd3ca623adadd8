"""aconfig modules to .bst YAML generator.

Orchestrates loading, value-set aggregation and package validation to
produce BuildStream element files: one cache element per
aconfig_declarations module and release config, plus one combined
all_aconfig_declarations element per release config.
"""

import os
from typing import Any, Dict, List, Optional

import yaml

from .aggregator import (
    AconfigError, AggregationResult, NotFoundError, aggregate, assemble_file_name,
    validate_unique_packages, value_set_edges,
)
from .config import ReleaseConfig, VALUE_SETS
from .loader import LoadResult, Loader
from .module_types import DeclarationsModule, ValueSetModule

TOOL_ELEMENT = "base/aconfig-tool.bst"
ALL_DECLARATIONS = "all_aconfig_declarations"
INSTALL_ROOT = "aconfig"


class ConversionResult:
    """Result of converting the aconfig modules of a tree."""

    def __init__(self):
        self.elements: List[Dict[str, Any]] = []  # list of {filename, content}
        self.skipped: List[str] = []  # non-aconfig modules and files
        self.errors: List[str] = []
        self.aggregation: AggregationResult = {}


class Converter:
    """Converts the aconfig modules of an AOSP tree to BuildStream elements."""

    def __init__(self, aosp_root: str, release_config: Optional[ReleaseConfig] = None,
                 output_prefix: str = ""):
        self.aosp_root = os.path.abspath(aosp_root)
        self.release_config = release_config or ReleaseConfig()
        self.output_prefix = output_prefix
        self.loader = Loader(self.aosp_root)

    def convert(self, blueprints: Optional[List[str]] = None) -> ConversionResult:
        result = ConversionResult()
        loaded = self.loader.load(blueprints)
        result.skipped.extend(loaded.ignored)
        if loaded.errors:
            result.errors.extend(loaded.errors)
            return result

        try:
            result.aggregation = self.aggregate(loaded)
            declarations = loaded.of_type(DeclarationsModule)
            configs = self.release_config.configuration_names()
            validate_unique_packages({config: declarations for config in configs})
        except AconfigError as e:
            result.errors.append(str(e))
            return result

        for config in configs:
            cache_elements = []
            for decl in declarations:
                element = self.declarations_element(decl, config,
                                                    result.aggregation[config])
                cache_elements.append(element)
                result.elements.append(element)
            result.elements.append(self.all_declarations_element(config, cache_elements))

        return result

    def aggregate(self, loaded: LoadResult) -> AggregationResult:
        """Resolve every value set in the tree and fold them per release config."""
        edges = []
        for value_set in loaded.of_type(ValueSetModule):
            edges.extend(value_set_edges(value_set, loaded.modules))

        by_config = self.release_config.value_sets_by_config()
        for config, names in by_config.items():
            flag = f"{VALUE_SETS}_{config}" if config else VALUE_SETS
            for name in names:
                if not isinstance(loaded.modules.get(name), ValueSetModule):
                    raise NotFoundError(flag, name, "must be a aconfig_value_set module",
                                        prop="value sets")
        return aggregate(edges, by_config)

    def _element_path(self, *parts: str) -> str:
        return "/".join(p for p in (self.output_prefix,) + parts if p)

    def declarations_element(self, decl: DeclarationsModule, config: str,
                             packages: Dict[str, List[str]]) -> Dict[str, Any]:
        """Build the create-cache element for one declarations module."""
        values = packages.get(decl.package, [])
        permission = self.release_config.default_permission(config)

        variables = {
            "aconfig-command": "create-cache",
            "package": decl.package,
            "container": decl.container,
            "declarations": " ".join(f"--declarations {src}" for src in decl.srcs),
            "values": " ".join(f"--values {v}" for v in values),
            "default-permission": f"--default-permission {permission}" if permission else "",
            "release-version": self.release_config.release_version,
            "install-dir": self._install_dir(decl),
            "cache-file": assemble_file_name(config, "intermediate.pb"),
            "dump-file": assemble_file_name(config, "intermediate.txt"),
        }
        element = {
            "kind": "aconfig",
            "depends": [TOOL_ELEMENT],
            "sources": [{
                "kind": "aconfig_files",
                "path": self.aosp_root,
                "files": decl.srcs + values,
            }],
            "variables": variables,
            # Read by dependents that need to know what the cache holds
            "public": {
                "aconfig": {
                    "package": decl.package,
                    "container": decl.container,
                    "exportable": decl.exportable,
                },
            },
        }
        filename = assemble_file_name(
            config, self._element_path(decl.module_dir, f"{decl.name}.bst"))
        return {"filename": filename, "content": element}

    def all_declarations_element(self, config: str,
                                 cache_elements: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Build the element that combines every cache of one release config."""
        cache_files = [
            "/" + e["content"]["variables"]["install-dir"] + "/"
            + e["content"]["variables"]["cache-file"]
            for e in cache_elements
        ]
        element = {
            "kind": "aconfig",
            "depends": [TOOL_ELEMENT] + [e["filename"] for e in cache_elements],
            "variables": {
                "aconfig-command": "dump-all",
                "cache-files": " ".join(f"--cache {c}" for c in cache_files),
                "install-dir": INSTALL_ROOT,
                "all-pb": assemble_file_name(config, f"{ALL_DECLARATIONS}.pb"),
                "all-textproto": assemble_file_name(config, f"{ALL_DECLARATIONS}.textproto"),
                "dist-pb": assemble_file_name(config, "flags.pb"),
                "dist-textproto": assemble_file_name(config, "flags.textproto"),
            },
        }
        filename = assemble_file_name(config, self._element_path(f"{ALL_DECLARATIONS}.bst"))
        return {"filename": filename, "content": element}

    def _install_dir(self, decl: DeclarationsModule) -> str:
        return "/".join(p for p in (INSTALL_ROOT, decl.module_dir, decl.name) if p)

    def write_elements(self, result: ConversionResult, output_dir: str):
        """Write generated elements to disk as .bst YAML files."""
        for element in result.elements:
            filepath = os.path.join(output_dir, element["filename"])
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
            with open(filepath, "w") as f:
                f.write(self.format_bst(element["content"]))

    def format_bst(self, element_dict: dict) -> str:
        return yaml.safe_dump(element_dict, default_flow_style=False, sort_keys=False)
