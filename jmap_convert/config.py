import json
import logging
import os
from dataclasses import dataclass
from dataclasses import fields
from typing import Optional
from zoneinfo import ZoneInfo
from zoneinfo import ZoneInfoNotFoundError

from jmap_convert.expand import DEFAULT_MAX_OCCURRENCES
from jmap_convert.parser import DEFAULT_MAX_COMPONENTS

"""
Settings for the converter.  They may be given as keyword arguments, as
environment variables (JMAP_CONVERT_DEFAULT_TIMEZONE etc) or in a config
file - in that order of precedence.

The config file is json (or yaml, if pyyaml is installed) with one
section per setup, i.e.

{
    "default": {"default_timezone": "Europe/Oslo", "max_occurrences": 50},
    "huge": {"inherits": "default", "max_components": 100000}
}
"""

ENV_PREFIX = "JMAP_CONVERT_"


@dataclass(frozen=True)
class Settings:
    ## floating date-times are ordered as if they were in this zone.  None means UTC
    default_timezone: Optional[str] = None
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES
    max_components: int = DEFAULT_MAX_COMPONENTS

    def __post_init__(self):
        if self.default_timezone is None:
            return
        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown default_timezone: {self.default_timezone!r}") from e


def config_section(config, section="default"):
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    ret.pop("inherits", None)
    return ret


def read_config(fn):
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config/"
        for config_file in (
            f"{cfgdir}/jmap_convert/convert.conf",
            f"{cfgdir}/jmap_convert/convert.yaml",
            f"{cfgdir}/jmap_convert/convert.json",
            "/etc/jmap_convert.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return {}

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, wrapped in try/except.  yaml is an optional
            ## dependency (the "yaml" extra)
            try:
                import yaml

                try:
                    with open(fn, "rb") as config_file:
                        return yaml.load(config_file, yaml.SafeLoader)
                except yaml.YAMLError:
                    logging.error(
                        f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                    )
            except ImportError:
                logging.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )

    except FileNotFoundError:
        logging.info(f"no config file found at {fn}")
    except ValueError:
        logging.error("error in config file.  It will be ignored", exc_info=True)
    return {}


def _from_environment():
    ret = {}
    for f in fields(Settings):
        value = os.environ.get(ENV_PREFIX + f.name.upper())
        if value:
            ret[f.name] = value
    return ret


def get_settings(config_file=None, section="default", **overrides) -> Settings:
    """
    Collects the settings from (in order of precedence) the keyword
    arguments, the environment and the config file.

    Raises:
        ValueError: if a numeric setting isn't a positive integer, or
            default_timezone isn't a known zone
    """
    cfg = config_section(read_config(config_file) or {}, section)
    cfg.update(_from_environment())
    cfg.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(Settings)}
    unknown = set(cfg) - known
    if unknown:
        logging.getLogger("jmap_convert").warning(
            f"ignoring unknown settings: {', '.join(sorted(unknown))}"
        )

    kwargs = {k: v for k, v in cfg.items() if k in known}
    for numeric in ("max_occurrences", "max_components"):
        if numeric in kwargs:
            kwargs[numeric] = int(kwargs[numeric])
            if kwargs[numeric] < 1:
                raise ValueError(f"{numeric} must be positive, got {kwargs[numeric]}")
    return Settings(**kwargs)
