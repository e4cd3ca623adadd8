"""Discovers aconfig modules in a source tree.

Walks the tree for Android.bp files, parses and evaluates them, and builds a
registry of aconfig modules keyed by name. Module srcs are expanded against
the tree so everything downstream works with concrete paths relative to the
tree root.
"""

import glob
import os
import re
from typing import Dict, List, Optional

from .evaluator import EvalError, Evaluator
from .module_types import AconfigModule, PropertyError, get_handler, supported_types
from .parser import ParseError, parse_string

BLUEPRINT_NAME = "Android.bp"

# Directories never holding modules we care about
SKIP_DIRS = {".git", ".repo", "out"}

_GLOB_CHARS = set("*?[")

# Any aconfig module definition, for files that fail to parse
_ACONFIG_MODULE_RE = re.compile(
    r"\b(?:%s)\s*\{" % "|".join(map(re.escape, supported_types())))


class DuplicateModuleError(Exception):
    def __init__(self, name, first, second):
        self.name = name
        super().__init__(f"module {name!r} already defined at {first}, redefined at {second}")


class LoadResult:
    """Modules found in a tree, with per-module diagnostics."""

    def __init__(self):
        self.modules: Dict[str, AconfigModule] = {}
        self.blueprints: List[str] = []
        self.errors: List[str] = []
        self.ignored: List[str] = []  # non-aconfig modules, "type 'name'"

    def of_type(self, cls) -> List[AconfigModule]:
        return [self.modules[name] for name in sorted(self.modules)
                if isinstance(self.modules[name], cls)]


class Loader:
    """Loads aconfig modules from Android.bp files under ``tree_root``."""

    def __init__(self, tree_root: str):
        self.tree_root = os.path.abspath(tree_root)

    def find_blueprints(self) -> List[str]:
        """Return every Android.bp under the tree, relative to the root, sorted."""
        found = []
        for dirpath, dirnames, filenames in os.walk(self.tree_root):
            dirnames[:] = sorted(d for d in dirnames
                                 if d not in SKIP_DIRS and not d.startswith("."))
            if BLUEPRINT_NAME in filenames:
                found.append(self._relpath(os.path.join(dirpath, BLUEPRINT_NAME)))
        return sorted(found)

    def load(self, blueprints: Optional[List[str]] = None) -> LoadResult:
        result = LoadResult()
        if blueprints is None:
            blueprints = self.find_blueprints()
        for bp in blueprints:
            self.load_file(bp, result)
        return result

    def load_file(self, bp: str, result: LoadResult):
        """Parse one Android.bp (relative to the tree root) into ``result``.

        Problems in a file that defines no aconfig module only land in
        ``result.ignored``.
        """
        result.blueprints.append(bp)
        path = os.path.join(self.tree_root, bp)
        try:
            with open(path, "r") as f:
                text = f.read()
        except OSError as e:
            result.errors.append(f"Parse error in {bp}: {e}")
            return
        try:
            file_ast = parse_string(text, filename=path)
        except ParseError as e:
            if _ACONFIG_MODULE_RE.search(text):
                result.errors.append(f"Parse error in {bp}: {e}")
            else:
                result.ignored.append(f"{bp}: {e}")
            return

        ignored = [f"{module.type} '{module.name or '?'}'"
                   for module in file_ast.modules if get_handler(module.type) is None]
        result.ignored.extend(ignored)
        if len(ignored) == len(file_ast.modules):
            return

        # Blueprint variables are scoped to the file that defines them.
        evaluator = Evaluator()
        try:
            evaluator.add_file_variables(file_ast)
        except EvalError as e:
            result.errors.append(f"Evaluation error in {bp}: {e}")
            return

        module_dir = _posix_dir(bp)
        for module in file_ast.modules:
            handler = get_handler(module.type)
            if handler is None:
                continue
            if not module.name:
                result.errors.append(f"{bp}: {module.type} module has no name")
                continue

            try:
                props = evaluator.evaluate_module(module)
                aconfig_module = handler.convert(module.name, props, module_dir,
                                                 pos=module.pos)
                aconfig_module.srcs = self.expand_srcs(
                    aconfig_module, excludes=[bp])
            except (EvalError, PropertyError) as e:
                result.errors.append(f"{module.type} '{module.name}': {e}")
                continue

            existing = result.modules.get(module.name)
            if existing is not None:
                err = DuplicateModuleError(module.name, existing.pos, module.pos)
                result.errors.append(str(err))
                continue
            result.modules[module.name] = aconfig_module

    def expand_srcs(self, module: AconfigModule, excludes=()) -> List[str]:
        """Expand a module's srcs into paths relative to the tree root.

        Globs may match nothing; plain paths must exist.
        """
        paths = []
        for pattern in module.srcs:
            rel = _join(module.module_dir, pattern)
            if _GLOB_CHARS & set(pattern):
                matches = glob.glob(os.path.join(self.tree_root, rel), recursive=True)
                paths.extend(sorted(self._relpath(m) for m in matches if os.path.isfile(m)))
            elif os.path.exists(os.path.join(self.tree_root, rel)):
                paths.append(rel)
            else:
                raise PropertyError(module.name, "srcs",
                                    f"module source path {rel!r} does not exist")
        return [p for p in paths if p not in excludes]

    def _relpath(self, path: str) -> str:
        return os.path.relpath(path, self.tree_root).replace(os.sep, "/")


def _posix_dir(path: str) -> str:
    head = path.rpartition("/")[0]
    return "" if head == "." else head


def _join(module_dir: str, path: str) -> str:
    return f"{module_dir}/{path}" if module_dir else path
