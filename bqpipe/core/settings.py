"""Settings loading and run configuration for bqpipe.

A run is configured from two sources: the settings file (TOML or YAML) and
command-line overrides. Overrides win whenever they carry a non-empty value.
The merged RunConfiguration is immutable and is the only configuration the
runner sees.
"""

import os
import tomllib
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from bqpipe.exceptions import ConfigInvalidError
from bqpipe.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILENAME = "bqpipe.toml"

STRING_FIELDS = (
    "directory",
    "project_id",
    "dataset",
    "location",
    "impersonate_service_account",
)
KNOWN_KEYS = frozenset(STRING_FIELDS + ("vars",))
YAML_EXTENSIONS = (".yml", ".yaml")


def _empty_vars() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True)
class Settings:
    """Values read from a settings file. Every field is optional."""

    directory: str = ""
    project_id: str = ""
    dataset: str = ""
    location: str = ""
    impersonate_service_account: str = ""
    vars: Mapping[str, str] = field(default_factory=_empty_vars)
    path: Optional[str] = None

    @property
    def source_dir(self) -> str:
        """Directory containing the settings file, or the working directory."""
        if self.path:
            return os.path.dirname(os.path.abspath(self.path))
        return os.getcwd()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: Optional[str] = None) -> "Settings":
        """Build Settings from parsed file content.

        Raises:
            ConfigInvalidError: If a field has the wrong type
        """
        label = path or "settings"
        if not isinstance(data, dict):
            raise ConfigInvalidError(f"{label} must contain a table of settings")

        unknown = sorted(set(data) - KNOWN_KEYS)
        if unknown:
            logger.warning(f"Ignoring unknown keys in {label}: {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for name in STRING_FIELDS:
            value = data.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigInvalidError(
                    f"'{name}' in {label} must be a string, got {type(value).__name__}"
                )
            values[name] = value

        raw_vars = data.get("vars") or {}
        if not isinstance(raw_vars, dict):
            raise ConfigInvalidError(f"'vars' in {label} must be a table")
        for key, value in raw_vars.items():
            if not isinstance(value, str):
                raise ConfigInvalidError(
                    f"Variable '{key}' in {label} must be a string, "
                    f"got {type(value).__name__}",
                    suggested_actions=[f'Quote the value: {key} = "{value}"'],
                )

        return cls(
            vars=MappingProxyType({str(k): v for k, v in raw_vars.items()}),
            path=path,
            **values,
        )


def _parse_file(path: str) -> Any:
    if path.lower().endswith(YAML_EXTENSIONS):
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_settings(path: Optional[str]) -> Settings:
    """Load a settings file.

    A missing file is not an error: it yields empty Settings so that every
    value must come from command-line overrides.

    Args:
        path: Path to a .toml, .yml or .yaml file

    Returns:
        Parsed Settings

    Raises:
        ConfigInvalidError: If the path is a directory or the file is malformed
    """
    if not path:
        return Settings()

    if not os.path.exists(path):
        logger.debug(f"Settings file not found at {path}, using overrides only")
        return Settings(path=path)
    if os.path.isdir(path):
        raise ConfigInvalidError(
            f"Settings path '{path}' is a directory, expected a file"
        )

    try:
        data = _parse_file(path)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ConfigInvalidError(f"Failed to parse {path}: {e}") from e
    except OSError as e:
        raise ConfigInvalidError(f"Failed to read {path}: {e}") from e

    logger.debug(f"Loaded settings from {path}")
    return Settings.from_dict(data, path=path)


@dataclass(frozen=True)
class RunOverrides:
    """Values supplied on the command line. None means not provided."""

    directory: Optional[str] = None
    project_id: Optional[str] = None
    dataset: Optional[str] = None
    location: Optional[str] = None
    impersonate_service_account: Optional[str] = None
    dry_run: bool = False


def first_non_empty(*values: Optional[str]) -> str:
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value:
            return value
    return ""


def _resolve_directory(overrides: RunOverrides, settings: Settings) -> str:
    # Relative paths, from the file or the command line, resolve against the
    # settings file's directory
    directory = first_non_empty(overrides.directory, settings.directory)
    if not directory:
        return ""
    return os.path.abspath(os.path.join(settings.source_dir, directory))


@dataclass(frozen=True)
class RunConfiguration:
    """Immutable, fully merged settings for one pipeline run."""

    directory: str
    project_id: str
    dataset: str = ""
    location: str = ""
    impersonate_service_account: str = ""
    variables: Mapping[str, str] = field(default_factory=_empty_vars)
    dry_run: bool = False
    settings_path: Optional[str] = None

    @classmethod
    def from_sources(
        cls, settings: Settings, overrides: Optional[RunOverrides] = None
    ) -> "RunConfiguration":
        """Merge settings file values with command-line overrides.

        A non-empty override always wins; an empty or missing override defers
        to the settings file.
        """
        overrides = overrides or RunOverrides()
        return cls(
            directory=_resolve_directory(overrides, settings),
            project_id=first_non_empty(overrides.project_id, settings.project_id),
            dataset=first_non_empty(overrides.dataset, settings.dataset),
            location=first_non_empty(overrides.location, settings.location),
            impersonate_service_account=first_non_empty(
                overrides.impersonate_service_account,
                settings.impersonate_service_account,
            ),
            variables=MappingProxyType(dict(settings.vars)),
            dry_run=overrides.dry_run,
            settings_path=(
                os.path.abspath(settings.path) if settings.path else None
            ),
        )

    def validate(self) -> None:
        """Check the preconditions for a run.

        Raises:
            ConfigInvalidError: If the project is missing or the directory is
                missing or not a directory
        """
        source = self.settings_path or DEFAULT_CONFIG_FILENAME
        if not self.project_id:
            raise ConfigInvalidError(
                f"Project ID is required (set in {source} or via --project)"
            )
        if not self.directory:
            raise ConfigInvalidError(
                f"Directory is required (set in {source} or via --directory)"
            )
        if not os.path.isdir(self.directory):
            raise ConfigInvalidError(
                f"Directory '{self.directory}' not found or is not a directory"
            )
