"""Configuration of the cell representative, read from a JSON file."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from .conversion import LAYERING_MODE_SINGLE_LAYER  # noqa: F401  (documented mode values)


class ConfigError(ValueError):
    """Raised when a configuration document is malformed."""


@dataclass(frozen=True)
class RootFS:
    """A preloaded root filesystem: a stack name and its path on disk."""

    name: str
    path: str


class RootFSes(list):
    """An ordered list of preloaded root filesystems."""

    def names(self) -> list[str]:
        return [rootfs.name for rootfs in self]

    def stack_path_map(self) -> dict[str, str]:
        """Map stack names to paths; later entries win on duplicate names."""
        return {rootfs.name: rootfs.path for rootfs in self}

    def to_json_list(self) -> list[str]:
        return [f"{rootfs.name}:{rootfs.path}" for rootfs in self]


def parse_rootfses(values: Any) -> RootFSes:
    """Parse ``["stack:path", ...]`` into RootFSes."""
    if values is None:
        return RootFSes()
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise ConfigError("preloaded_root_fs must be a list of strings")
    result = RootFSes()
    for value in values:
        name, sep, path = value.partition(":")
        if not sep:
            raise ConfigError(
                "Invalid preloaded RootFS value: not of the form 'stack-name:path'"
            )
        if not name:
            raise ConfigError("Invalid preloaded RootFS value: blank stack")
        if not path:
            raise ConfigError("Invalid preloaded RootFS value: blank path")
        result.append(RootFS(name, path))
    return result


_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"([0-9]*(?:\.[0-9]*)?)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration such as ``"1h2m3.5s"`` or ``"300ms"`` into seconds."""
    if not isinstance(value, str):
        raise ConfigError(f"invalid duration {value!r}")
    text = value
    sign = 1
    if text[:1] in "+-" and text:
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ConfigError(f"invalid duration {value!r}")
    total_ns = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if not match or match.group(1) in ("", "."):
            raise ConfigError(f"invalid duration {value!r}")
        total_ns += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    return sign * total_ns / 1e9


def _fraction(value: int, divisor: int) -> str:
    whole, frac = divmod(value, divisor)
    digits = str(frac).zfill(len(str(divisor)) - 1).rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(seconds: float) -> str:
    """Format seconds in the same notation that parse_duration reads."""
    ns = round(seconds * 1e9)
    if ns == 0:
        return "0s"
    prefix = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{prefix}{ns}ns"
    if ns < 1_000_000:
        return f"{prefix}{_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{prefix}{_fraction(ns, 1_000_000)}ms"
    hours, rest = divmod(ns, _UNITS["h"])
    minutes, rest = divmod(rest, _UNITS["m"])
    out = prefix
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + _fraction(rest, 1_000_000_000) + "s"


# (attribute, json key, kind, omitempty)
_FIELDS: tuple[tuple[str, str, str, bool], ...] = (
    ("advertise_domain", "advertise_domain", "str", True),
    ("bbs_address", "bbs_address", "str", False),
    ("bbs_client_session_cache_size", "bbs_client_session_cache_size", "int", True),
    ("bbs_max_idle_conns_per_host", "bbs_max_idle_conns_per_host", "int", True),
    ("bbs_ca_cert_file", "bbs_ca_cert_file", "str", False),
    ("bbs_client_cert_file", "bbs_client_cert_file", "str", False),
    ("bbs_client_key_file", "bbs_client_key_file", "str", False),
    ("ca_cert_file", "ca_cert_file", "str", False),
    ("cell_id", "cell_id", "str", False),
    ("cell_index", "cell_index", "int", False),
    ("communication_timeout", "communication_timeout", "duration", True),
    ("evacuation_polling_interval", "evacuation_polling_interval", "duration", True),
    ("evacuation_timeout", "evacuation_timeout", "duration", True),
    ("extra_rootfs_dir", "extra_root_fs_dir", "str", False),
    ("layering_mode", "layering_mode", "str", True),
    ("listen_addr", "listen_addr", "str", True),
    ("listen_addr_securable", "listen_addr_securable", "str", True),
    ("lock_retry_interval", "lock_retry_interval", "duration", True),
    ("lock_ttl", "lock_ttl", "duration", True),
    ("optional_placement_tags", "optional_placement_tags", "strlist", False),
    ("placement_tags", "placement_tags", "strlist", False),
    ("polling_interval", "polling_interval", "duration", True),
    ("preloaded_rootfs", "preloaded_root_fs", "rootfs", False),
    ("sidecar_rootfs_path", "sidecar_root_fs_path", "str", False),
    ("server_cert_file", "server_cert_file", "str", False),
    ("server_key_file", "server_key_file", "str", False),
    ("cert_file", "cert_file", "str", False),
    ("key_file", "key_file", "str", False),
    ("session_name", "session_name", "str", True),
    ("supported_providers", "supported_providers", "strlist", False),
    ("zone", "zone", "str", False),
    ("report_interval", "report_interval", "duration", True),
    ("loggregator_config", "loggregator", "object", False),
)
_KNOWN_KEYS = {key for _, key, _, _ in _FIELDS}


@dataclass
class RepConfig:
    """Settings of the cell representative.

    Durations are in seconds. Keys that belong to the embedded executor,
    logging, locket and debug-server settings are kept in ``extra``.
    """

    advertise_domain: str = ""
    bbs_address: str = ""
    bbs_client_session_cache_size: int = 0
    bbs_max_idle_conns_per_host: int = 0
    bbs_ca_cert_file: str = ""
    bbs_client_cert_file: str = ""
    bbs_client_key_file: str = ""
    ca_cert_file: str = ""
    cell_id: str = ""
    cell_index: int = 0
    communication_timeout: float = 0.0
    evacuation_polling_interval: float = 0.0
    evacuation_timeout: float = 0.0
    extra_rootfs_dir: str = ""
    layering_mode: str = ""
    listen_addr: str = ""
    listen_addr_securable: str = ""
    lock_retry_interval: float = 0.0
    lock_ttl: float = 0.0
    optional_placement_tags: list[str] = field(default_factory=list)
    placement_tags: list[str] = field(default_factory=list)
    polling_interval: float = 0.0
    preloaded_rootfs: RootFSes = field(default_factory=RootFSes)
    sidecar_rootfs_path: str = ""
    server_cert_file: str = ""
    server_key_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    session_name: str = ""
    supported_providers: list[str] = field(default_factory=list)
    zone: str = ""
    report_interval: float = 0.0
    loggregator_config: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON document this configuration would be read from."""
        out: dict[str, Any] = {}
        for attr, key, kind, omitempty in _FIELDS:
            value = getattr(self, attr)
            if omitempty and not value:
                continue
            if kind == "duration":
                out[key] = format_duration(value)
            elif kind == "rootfs":
                out[key] = RootFSes(value).to_json_list()
            elif kind in ("strlist", "object"):
                out[key] = type(value)(value) if value is not None else None
            else:
                out[key] = value
        out.update(self.extra)
        return out


def _convert(key: str, kind: str, value: Any) -> Any:
    if kind == "str":
        if not isinstance(value, str):
            raise ConfigError(f"{key}: expected a string")
        return value
    if kind == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{key}: expected an integer")
        return value
    if kind == "duration":
        return parse_duration(value)
    if kind == "strlist":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{key}: expected a list of strings")
        return list(value)
    if kind == "rootfs":
        return parse_rootfses(value)
    if not isinstance(value, dict):
        raise ConfigError(f"{key}: expected an object")
    return dict(value)


def rep_config_from_dict(data: Any) -> RepConfig:
    """Build a RepConfig from a decoded JSON document."""
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a JSON object")
    values: dict[str, Any] = {}
    for attr, key, kind, _ in _FIELDS:
        if data.get(key) is not None:
            values[attr] = _convert(key, kind, data[key])
    extra = {k: v for k, v in data.items() if k not in _KNOWN_KEYS}
    return RepConfig(**values, extra=extra)


def load_rep_config(path: str) -> RepConfig:
    """Read a RepConfig from a JSON file; OSError if it cannot be opened."""
    with open(path, encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ConfigError(str(exc)) from exc
    return rep_config_from_dict(data)