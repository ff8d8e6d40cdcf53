"""Typed configuration loading.

relsync reads an optional ``relsync.toml`` at the repository root:

    [changes]
    file_names = ["CHANGES", "CHANGES.md"]

    [style]
    default_prefix = "release-"

    [repo]
    slug = "owner/name"
    remote = "origin"
    main_branch = "main"

Every key is optional; a missing file yields the defaults.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_raw_str, get_str, get_str_list, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CHANGES_FILE_NAMES",
    "DEFAULT_STYLE_PREFIX",
    "ChangesConfig",
    "Config",
    "ConfigError",
    "RepoConfig",
    "StyleConfig",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "relsync.toml"
DEFAULT_CHANGES_FILE_NAMES: tuple[str, ...] = ("CHANGES", "CHANGES.md")
DEFAULT_STYLE_PREFIX = "release-"
DEFAULT_REMOTE = "origin"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ChangesConfig:
    """Where to look for the CHANGES document."""

    file_names: tuple[str, ...] = DEFAULT_CHANGES_FILE_NAMES


@dataclass(frozen=True, slots=True)
class StyleConfig:
    """Naming style used when no existing branch, tag or release parses."""

    default_prefix: str = DEFAULT_STYLE_PREFIX


@dataclass(frozen=True, slots=True)
class RepoConfig:
    """Hosted repository coordinates.

    ``main_branch`` of None means "ask the hosted repository for its default".
    """

    slug: str | None = None
    remote: str = DEFAULT_REMOTE
    main_branch: str | None = None


@dataclass(frozen=True, slots=True)
class Config:
    changes: ChangesConfig = field(default_factory=ChangesConfig)
    style: StyleConfig = field(default_factory=StyleConfig)
    repo: RepoConfig = field(default_factory=RepoConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a parsed TOML mapping."""
        changes: StrDict = get_table(data, "changes") or {}
        style: StrDict = get_table(data, "style") or {}
        repo: StrDict = get_table(data, "repo") or {}

        file_names = get_str_list(changes, "file_names")
        prefix = get_raw_str(style, "default_prefix")

        return cls(
            changes=ChangesConfig(
                file_names=tuple(file_names) if file_names else DEFAULT_CHANGES_FILE_NAMES,
            ),
            style=StyleConfig(
                default_prefix=DEFAULT_STYLE_PREFIX if prefix is None else prefix,
            ),
            repo=RepoConfig(
                slug=get_str(repo, "slug"),
                remote=get_str(repo, "remote") or DEFAULT_REMOTE,
                main_branch=get_str(repo, "main_branch"),
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relsync.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    match _parse_toml(path):
        case Ok(data):
            return Ok(Config.from_dict(data))
        case Err(e):
            return Err(e)


def load_config_or_default(root: Path) -> Result[Config, ConfigError]:
    """Load ``root/relsync.toml`` if present, defaults otherwise."""
    path = root / CONFIG_FILE_NAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
