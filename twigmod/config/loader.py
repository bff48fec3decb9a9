# twigmod/config/loader.py
"""
Handles loading and merging of configuration from TOML files.

Settings live top-level in `.twigmod.toml` / `twigmod.toml`, or under
`[tool.twigmod]` in `pyproject.toml`. Named profiles sit in `[profiles.<name>]`
and are layered over the base settings; CLI overrides are layered last.
"""
import toml
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import fields as dataclass_fields
import structlog

from twigmod.exceptions import ConfigError

from .settings import TwigmodConfig

log = structlog.get_logger(__name__)

PROJECT_CONFIG_FILENAMES = [".twigmod.toml", "twigmod.toml", "pyproject.toml"]

# maps config file keys to TwigmodConfig attribute names.
CONFIG_KEY_TO_ATTR_MAP: Dict[str, str] = {
    "root": "root",
    "namespaces": "namespaces",
    "extensions": "extensions",
    "autoescape": "autoescape",
    "strict_variables": "strict_variables",
    "trim_blocks": "trim_blocks",
    "lstrip_blocks": "lstrip_blocks",
    "input_paths": "input_paths",
    "include": "include_patterns",
    "exclude": "exclude_patterns",
    "no_ignore": "no_ignore",
    "hidden": "hidden",
    "follow_symlinks": "follow_symlinks",
    "output_dir": "output_dir",
}

_PATH_KEYS = {"root", "output_dir"}


def _load_toml_file_data(file_path: Path) -> Dict[str, Any]:
    if not file_path.is_file():
        return {}
    log.debug("loading_toml_config_file", path=str(file_path))
    try:
        data = toml.load(file_path)
    except toml.TomlDecodeError as e:
        raise ConfigError(f"could not parse config file {file_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"could not read config file {file_path}: {e}") from e
    if file_path.name == "pyproject.toml":
        return data.get("tool", {}).get("twigmod", {})
    return data


def find_project_config(start_dir: Path) -> Optional[Path]:
    # first config file in start_dir that actually carries twigmod settings.
    for filename in PROJECT_CONFIG_FILENAMES:
        candidate = start_dir / filename
        if candidate.is_file() and _load_toml_file_data(candidate):
            return candidate
    return None


def _settings_to_kwargs(settings: Dict[str, Any], config_dir: Path, source: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for key, value in settings.items():
        attr = CONFIG_KEY_TO_ATTR_MAP.get(key)
        if attr is None:
            if key != "profiles":
                log.warning("unknown_config_key_ignored", key=key, source=source)
            continue
        if key == "namespaces":
            if not isinstance(value, dict):
                raise ConfigError(f"'namespaces' in {source} must be a table of prefix = directory")
            # directories in a config file are relative to that file, not to the cwd.
            value = {name: str(config_dir / Path(directory)) for name, directory in value.items()}
        elif key in _PATH_KEYS:
            value = config_dir / Path(value)
        elif key == "input_paths":
            value = [config_dir / Path(p) for p in value]
        elif key in ("extensions", "include", "exclude") and isinstance(value, str):
            value = [value]
        kwargs[attr] = value
    return kwargs


def load_config(
    start_dir: Optional[Path] = None,
    config_file: Optional[Path] = None,
    profile: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> TwigmodConfig:
    """Builds the effective TwigmodConfig: defaults < file < profile < overrides."""
    start_dir = (start_dir or Path.cwd()).resolve()
    if config_file is not None:
        if not config_file.is_file():
            raise ConfigError(f"config file not found: {config_file}")
        source_file: Optional[Path] = config_file.resolve()
    else:
        source_file = find_project_config(start_dir)

    kwargs: Dict[str, Any] = {"root": start_dir}
    if source_file is not None:
        log.info("loading_project_config", path=str(source_file))
        settings = _load_toml_file_data(source_file)
        config_dir = source_file.parent
        kwargs["root"] = config_dir
        kwargs.update(_settings_to_kwargs(settings, config_dir, str(source_file)))

        if profile:
            profile_settings = settings.get("profiles", {}).get(profile)
            if profile_settings is None:
                raise ConfigError(f"profile '{profile}' not found in {source_file}")
            log.info("applying_profile_settings", profile=profile)
            kwargs.update(_settings_to_kwargs(profile_settings, config_dir, f"{source_file}:{profile}"))
    elif profile:
        raise ConfigError(f"profile '{profile}' requested but no config file was found in {start_dir}")
    else:
        log.debug("no_configuration_files_loaded", start_dir=str(start_dir))

    for attr, value in (overrides or {}).items():
        if attr == "namespaces":
            merged = dict(kwargs.get("namespaces", {}))
            merged.update(value)
            kwargs["namespaces"] = merged
        else:
            kwargs[attr] = value

    valid_fields = {f.name for f in dataclass_fields(TwigmodConfig) if f.init}
    unexpected = set(kwargs) - valid_fields
    if unexpected:
        raise ConfigError(f"unknown configuration fields: {', '.join(sorted(unexpected))}")
    try:
        return TwigmodConfig(**kwargs)
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"invalid configuration: {e}") from e
