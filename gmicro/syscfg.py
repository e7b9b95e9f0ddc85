"""Service configuration loaded from YAML and JSON files."""

import dataclasses
import json
import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar

import yaml

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PATH = "/etc/work/"
DEFAULT_PREFIX = "application"
DEFAULT_SUFFIX = "yaml"
DEFAULT_MYSQL_CONF_PATH = "C:\\work" if os.name == "nt" else "/etc/work/"
SERVER_PREFIX = "server"
MYSQL_PREFIX = "mysql"
DEFAULT_DATABASE = "biz"

_CONFIG_EXTENSIONS = ("yaml", "yml")


class ConfigError(Exception):
    """Raised when configuration is missing or malformed."""


@dataclass
class MysqlConf:
    addr: str
    port: int
    username: str
    password: str
    database: str

    def dsn(self) -> str:
        """The MySQL data source name for this configuration."""
        return (
            f"{self.username}:{self.password}@tcp({self.addr}:{self.port})/"
            f"{self.database}?charset=utf8mb4&parseTime=True&loc=Local"
        )


@dataclass
class ServerConf:
    name: str = ""
    port: int = 0
    ip: str = ""


@dataclass
class SysCfg:
    """Loaded configuration values and the components built from them."""

    values: dict = field(default_factory=dict)
    server_conf: Optional[ServerConf] = None


Option = Callable[[SysCfg], None]

_global: Optional[SysCfg] = None


def _zero(typ: Any) -> Any:
    return typ() if typ in (int, str, float, bool) else None


def _coerce(raw: Any, typ: Any, key: str) -> Any:
    if raw is None:
        return _zero(typ)
    if typ is int:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ConfigError(f"field {key!r}: expected an integer, got {raw!r}")
        return raw
    if typ is str:
        if not isinstance(raw, str):
            raise ConfigError(f"field {key!r}: expected a string, got {raw!r}")
        return raw
    return raw


def json_convert(value: Any, cls: type) -> Any:
    """Convert a JSON-compatible value into the dataclass ``cls``.

    Keys match field names, case-insensitively when no exact key exists;
    missing fields take their zero value and unknown keys are ignored.
    """
    try:
        data = json.loads(json.dumps(value))
    except (TypeError, ValueError) as exc:
        logger.error("err: %s", exc)
        raise ConfigError(str(exc)) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"cannot convert {type(data).__name__} into {cls.__name__}"
        )
    lowered = {str(k).lower(): v for k, v in data.items()}
    kwargs = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        key = f.metadata.get("json", f.name)
        typ = f.type
        if key in data:
            kwargs[f.name] = _coerce(data[key], typ, key)
        elif key.lower() in lowered:
            kwargs[f.name] = _coerce(lowered[key.lower()], typ, key)
        else:
            kwargs[f.name] = _zero(typ)
    return cls(**kwargs)


def load_mysql_conf(path: str = "") -> MysqlConf:
    """Read ``mysql.json`` from the directory ``path``."""
    directory = path or DEFAULT_MYSQL_CONF_PATH
    file_path = os.path.join(directory, "mysql.json")
    try:
        with open(file_path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot load {file_path}: {exc}") from exc
    return json_convert(data, MysqlConf)


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(v) for v in value]
    return value


def with_server() -> Option:
    """An option that builds the server configuration from the ``server`` key."""

    def apply(cfg: SysCfg) -> None:
        try:
            cfg.server_conf = json_convert(cfg.values.get(SERVER_PREFIX), ServerConf)
        except ConfigError as exc:
            logger.error("err is %s", exc)
            raise

    return apply


def new_syscfg(values: Mapping, *options: Option) -> SysCfg:
    """Build a configuration from loaded values, applying each option in turn."""
    cfg = SysCfg(values=_lower_keys(dict(values)))
    for option in (*options, with_server()):
        option(cfg)
    return cfg


def load_syscfg(path: str = "", *options: Option) -> SysCfg:
    """Load ``application.yaml`` from the directory ``path``."""
    directory = path or DEFAULT_PATH
    candidates = [
        os.path.join(directory, f"{DEFAULT_PREFIX}.{ext}") for ext in _CONFIG_EXTENSIONS
    ]
    file_path = next((c for c in candidates if os.path.isfile(c)), None)
    if file_path is None:
        raise ConfigError(
            f"fatal error config file: {DEFAULT_PREFIX}.{DEFAULT_SUFFIX} "
            f"not found in {directory}"
        )
    try:
        with open(file_path, encoding="utf-8") as fh:
            values = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"fatal error config file: {exc}") from exc
    if values is None:
        values = {}
    if not isinstance(values, Mapping):
        raise ConfigError("fatal error config file: top level is not a mapping")
    return new_syscfg(values, *options)


def init_global(path: str = "", *options: Option) -> SysCfg:
    """Load the configuration and make it the process-wide one."""
    global _global
    _global = load_syscfg(path, *options)
    return _global


def get_server_conf() -> ServerConf:
    """The server configuration of the process-wide configuration."""
    if _global is None:
        raise ConfigError("not found Global")
    if _global.server_conf is None:
        raise ConfigError("not found server conf")
    return _global.server_conf


def get_srv_addr() -> str:
    """The ``ip:port`` address the server listens on."""
    conf = get_server_conf()
    return f"{conf.ip}:{conf.port}"