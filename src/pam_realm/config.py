"""Load realm settings from an .ini file into a validated configuration."""

from __future__ import annotations

import configparser
from dataclasses import dataclass

DEFAULT_REALM_NAME = "pamRealm"
INI_SECTION = "main"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class PamRealmConfig:
    name: str
    service: str


def _validate(name: str, service: str) -> PamRealmConfig:
    if not name:
        raise ConfigError("realm name must not be empty")
    if not service:
        raise ConfigError("service must not be empty")
    if "/" in service:
        raise ConfigError(f"service must be a bare PAM service name: {service}")
    return PamRealmConfig(name=name, service=service)


def load_ini(path: str, realm_name: str = DEFAULT_REALM_NAME) -> PamRealmConfig:
    """Read the realm's service from the [main] section of an .ini file.

    The realm is declared as::

        [main]
        pamRealm = pam_realm.realm.PamRealm
        pamRealm.service = my-app
    """
    parser = configparser.ConfigParser(interpolation=None)
    # keys such as "pamRealm.service" are case sensitive
    parser.optionxform = str
    try:
        with open(path) as f:
            parser.read_file(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except configparser.Error as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc

    if not parser.has_section(INI_SECTION):
        raise ConfigError(f"missing [{INI_SECTION}] section in {path}")

    key = f"{realm_name}.service"
    service = parser.get(INI_SECTION, key, fallback=None)
    if service is None:
        raise ConfigError(f"missing required key: {key}")

    return _validate(realm_name, service.strip())
