# config_manager.py
import json
import logging
from collections import namedtuple
from pathlib import Path

from . import error as E

logger = logging.getLogger(__name__)

config_json = Path(__file__).resolve().parent / "config.json"

DEFAULT_SETTINGS = {
    "decimal_places": 20,
    "max_decimal_places": 200,
    "max_tokens": 4096,
    "max_literal_digits": 1000,
    "max_depth": 100,
    "max_nodes": 20000,
    "max_iterations": 32,
    "max_terms": 256,
    "max_expand_exponent": 32,
    "max_irrational_depth": 24,
}

LIMIT_KEYS = (
    "max_decimal_places",
    "max_tokens",
    "max_literal_digits",
    "max_depth",
    "max_nodes",
    "max_iterations",
    "max_terms",
    "max_expand_exponent",
    "max_irrational_depth",
)

# Structural bounds shared by every stage of one evaluation
Limits = namedtuple("Limits", LIMIT_KEYS)


def _read_settings(config_path=None):
    path = Path(config_path) if config_path is not None else config_json
    try:
        with open(path, 'r', encoding='utf-8') as f:
            settings_dict = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.debug("Falling back to default settings (%s): %s", path, e)
        return {}
    if not isinstance(settings_dict, dict):
        return {}
    return settings_dict


def load_setting_value(key_value, config_path=None):
    """Return one setting, or every setting for key 'all'. Missing keys fall back to the defaults."""
    settings_dict = dict(DEFAULT_SETTINGS)
    settings_dict.update(_read_settings(config_path))

    if key_value == "all":
        return settings_dict
    else:
        return settings_dict.get(key_value, 0)


def _checked(key, value):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise E.ConfigurationError(f"Invalid configuration value: {key}={value!r}", code="5001")
    return value


def load_limits(config_path=None, **overrides):
    """Build the Limits record from config.json, with keyword overrides for single keys."""
    settings_dict = load_setting_value("all", config_path)
    for key, value in overrides.items():
        if key not in LIMIT_KEYS:
            raise E.ConfigurationError(f"Invalid configuration value: unknown key {key!r}", code="5001")
        settings_dict[key] = value
    return Limits(*(_checked(key, settings_dict[key]) for key in LIMIT_KEYS))


def default_precision(config_path=None):
    value = load_setting_value("decimal_places", config_path)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise E.ConfigurationError(f"Invalid configuration value: decimal_places={value!r}", code="5001")
    return value
