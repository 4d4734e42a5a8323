"""Configuration management for PlexDigest.

Settings live in ``plexdigest.ini`` (YAML is accepted too). Every option has
a default, so a file only needs the credentials:

    [plex]
    url = http://192.168.1.100:32400
    token = ${PLEX_TOKEN}

    [tmdb]
    api_key = ${TMDB_API_KEY}

Values may reference environment variables with ${VAR} or $VAR. Unset
variables and blank values leave the default in place.
"""

from __future__ import annotations

import configparser
import os
import re
import sys
from pathlib import Path
from typing import Any, get_origin

import yaml
from pydantic import BaseModel, Field, ValidationError

CONFIG_FILE_NAME = "plexdigest.ini"
YAML_FILE_NAMES = ("plexdigest.yaml", "plexdigest.yml")
LEDGER_FILE_NAME = "plexdigest_posters.csv"


class ConfigError(Exception):
    """The config file could not be parsed or holds an invalid value."""

    pass


class PlexConfig(BaseModel):
    """Plex server configuration."""

    url: str | None = None
    token: str | None = None


class TMDBConfig(BaseModel):
    """TMDB API configuration."""

    api_key: str | None = None


class ImgurConfig(BaseModel):
    """Imgur configuration (poster mirroring)."""

    client_id: str | None = None


class EmailConfig(BaseModel):
    """SMTP delivery configuration."""

    host: str | None = None
    port: int = 587
    use_tls: bool = True
    username: str | None = None
    password: str | None = None
    sender: str | None = None
    recipients: list[str] = Field(default_factory=list)


class OptionsConfig(BaseModel):
    """Digest options."""

    days: int = 7  # Trailing window for "recently added"
    pause_every: int = 15  # Lookups between rate-limit pauses
    pause_seconds: float = 10.0
    mirror_posters: bool = False
    title_fallback: bool = True  # Search TMDB by title/year when no IMDB id matches
    cluster_by_library: bool = False  # Group seasons by (show, library) instead of show only
    subject: str = "Recently added to Plex"


class ExclusionsConfig(BaseModel):
    """Libraries left out of the digest."""

    libraries: list[str] = Field(default_factory=list)  # Section ids or titles


class PathsConfig(BaseModel):
    """File locations."""

    poster_ledger: str | None = None


class AppConfig(BaseModel):
    """Application configuration."""

    plex: PlexConfig = Field(default_factory=PlexConfig)
    tmdb: TMDBConfig = Field(default_factory=TMDBConfig)
    imgur: ImgurConfig = Field(default_factory=ImgurConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    options: OptionsConfig = Field(default_factory=OptionsConfig)
    exclusions: ExclusionsConfig = Field(default_factory=ExclusionsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)

    def missing_settings(self, mirror: bool = False, email: bool = False) -> list[str]:
        """List the settings a run still needs, as "[section] option" names.

        Args:
            mirror: The run re-hosts posters, so Imgur is required.
            email: The run sends mail, so the SMTP settings are required.
        """
        required = [("plex", "url"), ("plex", "token"), ("tmdb", "api_key")]
        if mirror:
            required.append(("imgur", "client_id"))
        if email:
            required += [("email", "host"), ("email", "sender"), ("email", "recipients")]
        return [
            f"[{section}] {option}"
            for section, option in required
            if not getattr(getattr(self, section), option)
        ]


SECTION_MODELS: dict[str, type[BaseModel]] = {
    "plex": PlexConfig,
    "tmdb": TMDBConfig,
    "imgur": ImgurConfig,
    "email": EmailConfig,
    "options": OptionsConfig,
    "exclusions": ExclusionsConfig,
    "paths": PathsConfig,
}

_config: AppConfig | None = None
_config_path: Path | None = None  # Where the cached config came from

_ENV_VAR = re.compile(r"\$(?:\{(?P<braced>[^}]+)\}|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))")


def get_exe_directory() -> Path:
    """Get the directory of a frozen executable, or the working directory."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    return Path.cwd()


def get_user_directory() -> Path:
    """Get the per-user settings directory (~/.plexdigest)."""
    return Path.home() / ".plexdigest"


def get_config_paths() -> list[Path]:
    """Get the config files to try, highest priority first.

    plexdigest.ini next to the executable, in the working directory and in
    ~/.plexdigest, then the YAML variants in the same directories.
    """
    directories = list(dict.fromkeys([get_exe_directory(), Path.cwd(), get_user_directory()]))
    names = (CONFIG_FILE_NAME, *YAML_FILE_NAMES)
    return [directory / name for name in names for directory in directories]


def find_config_file() -> Path | None:
    """Find the first existing config file."""
    return next((path for path in get_config_paths() if path.exists()), None)


def _expand_env_vars(value: Any) -> Any:
    """Expand ${VAR} and $VAR references in strings, dicts and lists.

    Unset variables expand to an empty string.
    """
    if isinstance(value, str):
        return _ENV_VAR.sub(lambda m: os.environ.get(m["braced"] or m["bare"], ""), value)
    if isinstance(value, dict):
        return {key: _expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


def _parse_list(value: str) -> list[str]:
    """Split a comma-separated value, dropping blank items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _read_ini_section(
    parser: configparser.ConfigParser, section: str, model: type[BaseModel]
) -> dict[str, Any]:
    """Collect the options of one section that the model knows about.

    Values stay strings for pydantic to coerce, except list fields which are
    comma separated. Blank values are skipped so the model default applies.
    """
    values: dict[str, Any] = {}
    if not parser.has_section(section):
        return values

    for name, field in model.model_fields.items():
        raw = parser.get(section, name, fallback=None)
        if raw is None:
            continue
        value = _expand_env_vars(raw).strip()
        if get_origin(field.annotation) is list:
            values[name] = _parse_list(value)
        elif value:
            values[name] = value
    return values


def _load_ini_config(path: Path) -> dict[str, Any]:
    """Load configuration from an INI file."""
    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path, encoding="utf-8")

    raw: dict[str, Any] = {}
    for section, model in SECTION_MODELS.items():
        values = _read_ini_section(parser, section, model)
        if values:
            raw[section] = values
    return raw


def _load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return _expand_env_vars(data)


def load_config(path: Path | None = None) -> AppConfig:
    """Load the configuration and make it current.

    Args:
        path: Config file to read. Defaults to the first file found by
            find_config_file(); without one every setting takes its default.

    Raises:
        ConfigError: If the file cannot be parsed or holds an invalid value.
    """
    global _config, _config_path

    if path is None:
        path = find_config_file()

    if path is None or not path.exists():
        _config, _config_path = AppConfig(), None
        return _config

    loader = _load_ini_config if path.suffix in (".ini", ".cfg") else _load_yaml_config
    try:
        config = AppConfig.model_validate(loader(path))
    except (configparser.Error, yaml.YAMLError, ValidationError) as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    _config, _config_path = config, path
    return config


def get_config_path() -> Path | None:
    """Get the file the current configuration came from, if any."""
    return _config_path


def get_config() -> AppConfig:
    """Get the current configuration, loading it on first use."""
    if _config is None:
        return load_config()
    return _config


def has_valid_config() -> bool:
    """Check for a config file holding the Plex and TMDB credentials."""
    if find_config_file() is None:
        return False
    return not get_config().missing_settings()


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config, _config_path
    _config = None
    _config_path = None


def get_ledger_path() -> Path:
    """Get the poster ledger location.

    Uses [paths] poster_ledger when set, otherwise the ledger sits next to
    the config file (or the executable when no config is loaded).
    """
    cfg = get_config()
    if cfg.paths.poster_ledger:
        return Path(cfg.paths.poster_ledger).expanduser()

    config_path = get_config_path()
    directory = config_path.parent if config_path is not None else get_exe_directory()
    return directory / LEDGER_FILE_NAME


_DEFAULT_CONFIG = """\
# PlexDigest configuration
# Values may reference environment variables: ${{VAR}} or $VAR

[plex]
# Plex server URL (e.g. http://192.168.1.100:32400)
url = {plex_url}
# X-Plex-Token from Plex settings
token = {plex_token}

[tmdb]
# TMDB API key, see https://www.themoviedb.org/settings/api
api_key = {tmdb_api_key}

[imgur]
# Imgur client id, only needed when mirror_posters = true
client_id = ${{IMGUR_CLIENT_ID}}

[email]
host = ${{SMTP_HOST}}
port = 587
use_tls = true
username = ${{SMTP_USER}}
password = ${{SMTP_PASSWORD}}
sender = ${{SMTP_SENDER}}
# Comma-separated list of addresses
recipients =

[options]
# Report items added within this many days
days = 7
# Pause pause_seconds after every pause_every TMDB lookups
pause_every = 15
pause_seconds = 10
# Re-host Plex thumbnails on Imgur so mail clients can load them
mirror_posters = false
# Search TMDB by title and year when a movie has no usable IMDB id
title_fallback = true
# Keep same-named shows from different libraries apart
cluster_by_library = false
subject = Recently added to Plex

[exclusions]
# Library section ids or titles to skip (comma-separated)
libraries =

[paths]
# Poster ledger CSV (defaults to plexdigest_posters.csv next to this file)
# poster_ledger = ~/.plexdigest/posters.csv
"""


def save_default_config(
    path: Path | None = None,
    plex_url: str = "",
    plex_token: str = "",
    tmdb_api_key: str = "",
) -> Path:
    """Write a commented default plexdigest.ini.

    Credentials that are not given are written as ${PLEX_URL},
    ${PLEX_TOKEN} and ${TMDB_API_KEY} references.

    Returns:
        Path of the written file.
    """
    if path is None:
        path = Path.cwd() / CONFIG_FILE_NAME

    content = _DEFAULT_CONFIG.format(
        plex_url=plex_url or "${PLEX_URL}",
        plex_token=plex_token or "${PLEX_TOKEN}",
        tmdb_api_key=tmdb_api_key or "${TMDB_API_KEY}",
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
