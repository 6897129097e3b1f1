# depcheck/config.py
import logging
from dataclasses import replace
from pathlib import Path

import yaml  # For config file

from .models import DEFAULT_THRESHOLDS, Dependency, DependencyThresholds, ParseError, PolicyThresholds, Version

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "depcheck.yaml"
THRESHOLD_KEYS = ("error_below", "warn_below")


class ConfigError(ValueError):
    """Threshold configuration that cannot be turned into a policy."""


def load_config(config_path: str = CONFIG_FILENAME) -> dict:
    config = {}
    path = Path(config_path)
    if path.is_file():
        logger.debug(f"Attempting to load configuration from '{path.resolve()}'...")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded_yaml = yaml.safe_load(f)
            if isinstance(loaded_yaml, dict):
                config = loaded_yaml
                logger.info(f"Loaded configuration from {path.resolve()}")
            elif loaded_yaml is None:
                logger.info(f"Config file '{path.resolve()}' is empty. Using defaults.")
            else:
                logger.warning(f"Config file '{path.resolve()}' does not contain a valid dictionary structure.")
        except yaml.YAMLError as e:
            logger.warning(f"Error parsing YAML configuration file '{path.resolve()}': {e}")
        except OSError as e:
            logger.warning(f"Could not read configuration '{path.resolve()}': {e}")
    else:
        logger.info(f"Configuration file '{config_path}' not found. Using defaults/CLI args.")
    return config


def _parse_threshold(slot: str, key: str, value) -> Version:
    # YAML turns an unquoted 7.10 into the float 7.1
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigError(f"thresholds.{slot}.{key}: expected a quoted version string, got {type(value).__name__} {value!r}; quote the version, e.g. warn_below: '7.10'")
    try:
        return Version.parse(str(value))
    except ParseError as e:
        raise ConfigError(f"thresholds.{slot}.{key}: {e}") from e


def thresholds_from_config(config: dict, base: PolicyThresholds = DEFAULT_THRESHOLDS) -> PolicyThresholds:
    """
    Overlays the optional 'thresholds' section of a config dict on `base`:

        thresholds:
          gradle: {error_below: "7.0.2", warn_below: "7.6.3"}
          kgp: {warn_below: "1.7.0"}
    """
    section = config.get('thresholds') or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'thresholds' must be a mapping, found {type(section).__name__}")

    thresholds = base
    for slot, values in section.items():
        try:
            dependency = Dependency.from_key(str(slot))
        except KeyError:
            valid = ", ".join(dep.key for dep in Dependency)
            raise ConfigError(f"Unknown dependency '{slot}' in thresholds (expected one of: {valid})") from None
        if not isinstance(values, dict):
            raise ConfigError(f"thresholds.{slot} must be a mapping with {' and/or '.join(THRESHOLD_KEYS)}")
        unknown = set(values) - set(THRESHOLD_KEYS)
        if unknown:
            raise ConfigError(f"Unknown keys in thresholds.{slot}: {', '.join(sorted(map(str, unknown)))}")

        current = thresholds.for_dependency(dependency)
        error_below = _parse_threshold(slot, 'error_below', values['error_below']) if 'error_below' in values else current.error_below
        warn_below = _parse_threshold(slot, 'warn_below', values['warn_below']) if 'warn_below' in values else current.warn_below
        try:
            limits = DependencyThresholds(error_below=error_below, warn_below=warn_below)
        except ValueError as e:
            raise ConfigError(f"thresholds.{slot}: {e}") from e
        thresholds = replace(thresholds, **{dependency.key: limits})
    return thresholds
