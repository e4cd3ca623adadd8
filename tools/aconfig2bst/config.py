"""Release configuration build flags consumed by the aconfig conversion.

Flags come from a YAML file mapping flag name to value, as dumped from a
release config, optionally overridden by KEY=VALUE pairs from the command
line. List-valued flags are space separated strings, as in the build.
"""

from typing import Dict, Iterable, List, Optional

import yaml

VALUE_SETS = "RELEASE_ACONFIG_VALUE_SETS"
EXTRA_RELEASE_CONFIGS = "RELEASE_ACONFIG_EXTRA_RELEASE_CONFIGS"
DEFAULT_PERMISSION = "RELEASE_ACONFIG_FLAG_DEFAULT_PERMISSION"
RELEASE_VERSION = "RELEASE_VERSION"


class ConfigError(Exception):
    pass


class ReleaseConfig:
    """Read-only view over the build flags relevant to aconfig."""

    def __init__(self, build_flags: Optional[Dict[str, str]] = None):
        self.build_flags: Dict[str, str] = dict(build_flags or {})

    @classmethod
    def from_file(cls, path: str, overrides: Iterable[str] = ()) -> "ReleaseConfig":
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping of build flags")
        # YAML may hand back lists or scalars; the build only knows strings.
        flags = {}
        for key, value in data.items():
            if isinstance(value, list):
                value = " ".join(str(v) for v in value)
            elif isinstance(value, bool):
                value = "true" if value else "false"
            elif value is None:
                value = ""
            flags[str(key)] = str(value)
        config = cls(flags)
        config.apply_overrides(overrides)
        return config

    def apply_overrides(self, overrides: Iterable[str]):
        for item in overrides:
            key, sep, value = item.partition("=")
            if not sep or not key:
                raise ConfigError(f"build flag must be KEY=VALUE, got {item!r}")
            self.build_flags[key] = value

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.build_flags.get(name, default)

    def _list(self, name: str) -> List[str]:
        return (self.get(name) or "").split()

    @property
    def extra_release_configs(self) -> List[str]:
        return self._list(EXTRA_RELEASE_CONFIGS)

    def configuration_names(self) -> List[str]:
        """The default config "" plus every extra release config, sorted."""
        return sorted(set([""] + self.extra_release_configs))

    def value_sets(self, config: str = "") -> List[str]:
        if not config:
            return self._list(VALUE_SETS)
        return self._list(f"{VALUE_SETS}_{config}")

    def value_sets_by_config(self) -> Dict[str, List[str]]:
        return {config: self.value_sets(config) for config in self.configuration_names()}

    def default_permission(self, config: str = "") -> str:
        permission = self.get(DEFAULT_PERMISSION, "")
        if config:
            permission = self.get(f"{DEFAULT_PERMISSION}_{config}", permission)
        return permission

    @property
    def release_version(self) -> str:
        return self.get(RELEASE_VERSION, "")
