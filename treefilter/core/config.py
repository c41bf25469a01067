"""Configuration files for treefilter.

Settings come from up to three TOML files, merged lowest to highest:

1. ``~/.config/treefilter/config.toml``
2. ``<git root>/treefilter.toml``
3. ``<start dir>/treefilter.toml``

Every file may hold the same sections::

    [general]
    default_plugin = "json"

    [output]
    color = true
    format = "text"          # text, json or count

    [filters]
    fast = "/**[Category=Fast]"
    math = "/MyModule/Math*/**"

A later file overrides single keys of an earlier one, so named filters merge
by name: a project file can replace ``fast`` and still see the user's
``math``. Each file is checked on its own, so errors name the file at fault.
"""

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomli

from treefilter.core.parser import PatternSyntaxError, compile_pattern
from treefilter.utils.git import find_git_root

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "treefilter.toml"
USER_CONFIG_PATH = Path(".config") / "treefilter" / "config.toml"

SECTIONS = ("general", "output", "filters")
OUTPUT_FORMATS = ("text", "json", "count")

_TOML_ERROR_LINE = re.compile(r"line (\d+)")


class ConfigError(Exception):
    """A config file could not be read or holds a bad value.

    Attributes:
        line: Line of a TOML syntax error, when tomli reports one.
        path: The config file at fault, when known.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        path: Optional[Path] = None
    ):
        self.line = line
        self.path = path

        if path is not None:
            where = str(path) if line is None else f"{path}, line {line}"
            message = f"Error in {where}: {message}"

        super().__init__(message)


@dataclass
class GeneralConfig:
    """The ``[general]`` section."""

    default_plugin: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "GeneralConfig":
        return cls(default_plugin=data.get("default_plugin"))


@dataclass
class OutputConfig:
    """The ``[output]`` section."""

    color: bool = True
    format: str = "text"

    @classmethod
    def from_dict(cls, data: dict) -> "OutputConfig":
        return cls(color=data.get("color", True), format=data.get("format", "text"))


@dataclass
class Config:
    """Complete treefilter configuration.

    Attributes:
        general: Plugin defaults.
        output: How the CLI prints its selection.
        filters: Named filters, mapping a name to a filter string. The CLI
            accepts ``@name`` wherever it takes a filter.
    """

    general: GeneralConfig = field(default_factory=GeneralConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    filters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from parsed TOML; missing sections keep defaults."""
        return cls(
            general=GeneralConfig.from_dict(data.get("general", {})),
            output=OutputConfig.from_dict(data.get("output", {})),
            filters={str(k): str(v) for k, v in data.get("filters", {}).items()},
        )

    def resolve_filter(
        self,
        name: str,
        fallback: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Look up a named filter.

        Args:
            name: Filter name, with or without a leading ``@``.
            fallback: Further named filters, consulted only for names this
                config does not define (the CLI passes plugin filters here).

        Returns:
            The filter string.

        Raises:
            ConfigError: If neither this config nor ``fallback`` has the name.
        """
        key = name[1:] if name.startswith("@") else name
        if key in self.filters:
            return self.filters[key]
        if fallback is not None and key in fallback:
            return fallback[key]

        known = ", ".join(sorted({*self.filters, *(fallback or {})})) or "none"
        raise ConfigError(f"Unknown named filter '{key}' (known filters: {known})")

    def validate(self, path: Optional[Path] = None) -> None:
        """Check the values TOML itself cannot.

        Raises:
            ConfigError: For an unknown output format, or for the first named
                filter that does not compile.
        """
        if self.output.format.lower() not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unknown output format '{self.output.format}' "
                f"(expected one of: {', '.join(OUTPUT_FORMATS)})",
                path=path,
            )

        for name, source in self.filters.items():
            try:
                compile_pattern(source)
            except PatternSyntaxError as e:
                raise ConfigError(f"Invalid filter '{name}': {e}", path=path) from e


class ConfigLoader:
    """Reads treefilter TOML files.

    Example usage:
        loader = ConfigLoader()
        config = loader.load(Path("treefilter.toml"))  # one explicit file
        config = loader.load_merged()                   # discovered files
    """

    def load(self, path: Optional[Path]) -> Config:
        """Load a single config file; None gives the defaults.

        Raises:
            ConfigError: If the file is not valid TOML or holds a bad value.
            FileNotFoundError: If ``path`` does not exist.
        """
        if path is None:
            return Config()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        config = Config.from_dict(self._read(path))
        config.validate(path)
        return config

    def discover_configs(self, start_path: Optional[Path] = None) -> list[Path]:
        """Find the config files that apply to ``start_path``.

        Args:
            start_path: Directory whose local file has the last word.
                Defaults to the current working directory.

        Returns:
            The existing files, lowest precedence first. A file reached twice,
            as when ``start_path`` is the git root, is listed once.
        """
        start = Path.cwd() if start_path is None else Path(start_path).resolve()

        candidates = [Path(os.path.expanduser("~")) / USER_CONFIG_PATH]
        git_root = find_git_root(start)
        if git_root is not None:
            candidates.append(git_root / CONFIG_FILE_NAME)
        candidates.append(start / CONFIG_FILE_NAME)

        found: list[Path] = []
        seen: set[Path] = set()
        for candidate in candidates:
            if not candidate.is_file():
                continue
            resolved = candidate.resolve()
            if resolved not in seen:
                seen.add(resolved)
                found.append(candidate)
        return found

    def load_merged(self, start_path: Optional[Path] = None) -> Config:
        """Layer every discovered config file into one Config.

        Raises:
            ConfigError: Naming the first file that is not valid TOML or holds
                a bad value.
        """
        layered: dict[str, dict] = {section: {} for section in SECTIONS}

        for config_path in self.discover_configs(start_path):
            data = self._read(config_path)
            Config.from_dict(data).validate(config_path)
            for section in SECTIONS:
                layered[section].update(data.get(section, {}))
            logger.debug("Loaded config %s", config_path)

        return Config.from_dict(layered)

    def _read(self, path: Path) -> dict:
        """Parse one TOML file and check that its known sections are tables."""
        try:
            data = tomli.loads(path.read_text(encoding="utf-8"))
        except tomli.TOMLDecodeError as e:
            match = _TOML_ERROR_LINE.search(str(e))
            line = int(match.group(1)) if match else None
            raise ConfigError(str(e), line=line, path=path) from e

        for section in SECTIONS:
            if section in data and not isinstance(data[section], dict):
                raise ConfigError(f"[{section}] must be a table", path=path)
        return data
