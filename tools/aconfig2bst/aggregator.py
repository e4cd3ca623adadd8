"""Value-set aggregation for aconfig release configurations.

An ``aconfig_value_set`` groups ``aconfig_values`` modules, each of which
holds the value files for one flag package. For every release configuration
the value sets it honors are folded into a map of package -> value files,
which the declarations of that package then pass to ``aconfig``.

Everything here is pure: edges come in, maps come out. Discovering modules
and expanding globs is the loader's job.
"""

from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .module_types import AconfigModule, DeclarationsModule, ValuesModule, ValueSetModule

# (value set name, module the value set points at)
Edge = Tuple[str, AconfigModule]

PackageSources = Dict[str, List[str]]
AggregationResult = Dict[str, PackageSources]

VALUE_SET_TOKEN = "aconfig_value_set"
VALUES_TOKEN = "aconfig-values"
VALUES_SUFFIX = "all"


class AconfigError(Exception):
    """Base class for errors that abort an aconfig conversion step."""


class NotFoundError(AconfigError):
    """A referenced module is missing or is not of the kind required."""

    def __init__(self, owner, name, reason="", prop="values"):
        self.owner = owner
        self.name = name
        super().__init__(f"{owner}: {prop}: {name!r} {reason}".rstrip())


class MissingModuleError(AconfigError):
    def __init__(self, value_set, expected, src):
        self.value_set = value_set
        self.expected = expected
        self.src = src
        super().__init__(
            f'module "{value_set}": module "{expected}" not found. '
            f'Rename the aconfig_values module defined in "{src}" to "{expected}"'
        )


class DuplicatePackageError(AconfigError):
    def __init__(self, offenders: Dict[str, Dict[str, int]]):
        # release config -> package -> number of declarations
        self.offenders = offenders
        lines = []
        for config in sorted(offenders):
            for package, count in sorted(offenders[config].items()):
                line = f"{count} aconfig_declarations found for package {package}"
                if config:
                    line += f" (release config {config})"
                lines.append(line)
        lines.append("Only one aconfig_declarations allowed for each package.")
        super().__init__("\n".join(lines))


def values_module_name(value_set_name: str, package_dir: str) -> str:
    """Name an aconfig_values module must have to be found from a value set's srcs."""
    prefix = value_set_name.replace(VALUE_SET_TOKEN, VALUES_TOKEN, 1)
    return f"{prefix}-{package_dir}-{VALUES_SUFFIX}"


def infer_values_names(value_set: ValueSetModule, srcs: Iterable[str]) -> Dict[str, str]:
    """Map expected aconfig_values module names to the source that implied them.

    Each src is a path to an Android.bp one directory below the value set,
    e.g. ``some_release/android.foo/Android.bp``; that directory names the
    package. Sources sitting directly in the value set's directory, or more
    than one directory below it, are skipped.
    """
    prefix = value_set.module_dir + "/" if value_set.module_dir else ""
    names = {}
    for src in srcs:
        sub_dir = src[len(prefix):] if src.startswith(prefix) else src
        parts = sub_dir.split("/")
        if len(parts) == 2:
            names[values_module_name(value_set.name, parts[0])] = src
    return names


def value_set_edges(value_set: ValueSetModule, modules: Mapping[str, AconfigModule],
                    srcs: Optional[Iterable[str]] = None) -> List[Edge]:
    """Resolve the dependencies of one value set into edges.

    ``srcs`` are the value set's srcs already expanded against the tree
    (defaults to ``value_set.srcs``). Inferred modules come first, in name
    order, followed by the explicit ``values`` list.
    """
    if srcs is None:
        srcs = value_set.srcs

    edges = []
    inferred = infer_values_names(value_set, srcs)
    for name in sorted(inferred):
        module = modules.get(name)
        if module is None:
            raise MissingModuleError(value_set.name, name, inferred[name])
        edges.append((value_set.name, module))

    for name in value_set.values:
        module = modules.get(name)
        if module is None:
            raise NotFoundError(f"module {value_set.name!r}", name, "not found")
        edges.append((value_set.name, module))
    return edges


def aggregate(edges: Sequence[Edge],
              configurations: Mapping[str, Sequence[str]]) -> AggregationResult:
    """Fold value-set edges into package sources per release configuration.

    ``configurations`` maps a release config name to the value sets it
    honors, in order. The default config ``""`` is always in the result.
    Packages that show up more than once have their sources appended.
    """
    by_value_set: Dict[str, List[ValuesModule]] = {}
    for value_set, module in edges:
        if not isinstance(module, ValuesModule):
            raise NotFoundError(f"module {value_set!r}", module.name,
                                "must be a aconfig_values module")
        by_value_set.setdefault(value_set, []).append(module)

    result: AggregationResult = {"": {}}
    for config in sorted(configurations):
        packages: PackageSources = {}
        for value_set in configurations[config]:
            for module in by_value_set.get(value_set, []):
                packages.setdefault(module.package, []).extend(module.srcs)
        result[config] = packages
    return result


def validate_unique_packages(declarations: Mapping[str, Iterable[DeclarationsModule]]) -> None:
    """Fail unless every package has at most one declarations module per config.

    ``declarations`` maps each release config name to every declarations
    module in the build for that config, not only the ones a product uses.
    """
    offenders: Dict[str, Dict[str, int]] = {}
    for config in sorted(declarations):
        counts = Counter(decl.package for decl in declarations[config])
        dupes = {package: count for package, count in counts.items() if count > 1}
        if dupes:
            offenders[config] = dupes
    if offenders:
        raise DuplicatePackageError(offenders)


def assemble_file_name(config: str, path: str) -> str:
    """Qualify ``path`` with a release config: ``dir/a.pb`` -> ``dir/a-FOO.pb``."""
    if not config:
        return path
    head, sep, file = path.rpartition("/")
    dot = file.rfind(".")
    if dot == -1:
        base, ext = file, ""
    else:
        base, ext = file[:dot], file[dot:]
    return f"{head}{sep}{base}-{config}{ext}"
