from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Sequence


@dataclass
class DeviceSettings:
    bus: int = 1
    address: int = 0x76
    preset: int = 1


@dataclass
class HostRuntime:
    interval_sec: float = 1.0
    window_capacity: int = 60
    stats_log_interval: float = 60.0
    max_samples: int = 0  # 0 = run until interrupted


@dataclass
class HostConfig:
    device: DeviceSettings = field(default_factory=DeviceSettings)
    host: HostRuntime = field(default_factory=HostRuntime)
    output_csv: Path | None = None

    def validate(self) -> None:
        if not 0 <= self.device.address <= 0x7F:
            raise ValueError(f"device.address 0x{self.device.address:X} is not a 7-bit I2C address")
        if self.host.window_capacity < 1:
            raise ValueError("host.window_capacity must be at least 1")
        if self.host.interval_sec < 0:
            raise ValueError("host.interval_sec may not be negative")
        if self.host.max_samples < 0:
            raise ValueError("host.max_samples may not be negative")


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge(base[key], value)  # type: ignore[index]
        else:
            merged[key] = value
    return merged


def _parse_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> HostConfig:
    """
    Load the acquisition host configuration from JSON and apply CLI-style overrides.

    Overrides are expressed as dotted `key=value` pairs, e.g.:
        ["device.preset=3", "host.window_capacity=120"]
    Without a path, the defaults are used as the base.
    """
    data: Dict[str, Any] = _load_json(Path(path)) if path is not None else {}
    override_data: Dict[str, Any] = {}
    for override in overrides or []:
        key, raw_value = _parse_override(override)
        _assign_nested(override_data, key, raw_value)
    merged = _merge(data, override_data)
    device_data = merged.get("device") or {}
    host_data = merged.get("host") or {}
    config = HostConfig(
        device=DeviceSettings(
            bus=_parse_int(device_data.get("bus", 1)),
            address=_parse_int(device_data.get("address", 0x76)),
            preset=_parse_int(device_data.get("preset", 1)),
        ),
        host=HostRuntime(
            interval_sec=float(host_data.get("interval_sec", 1.0)),
            window_capacity=int(host_data.get("window_capacity", 60)),
            stats_log_interval=float(host_data.get("stats_log_interval", 60.0)),
            max_samples=int(host_data.get("max_samples", 0)),
        ),
        output_csv=Path(merged["output_csv"]) if merged.get("output_csv") else None,
    )
    config.validate()
    return config


def _parse_override(item: str) -> tuple[str, Any]:
    if "=" not in item:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    key, raw_value = item.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError("Override key may not be empty")
    value = _coerce_value(raw_value.strip())
    return key, value


def _coerce_value(raw: str) -> Any:
    if raw.lower() in {"true", "false"}:
        return raw.lower() == "true"
    try:
        if raw.lower().startswith("0x"):
            return int(raw, 16)
        if "." in raw or "e" in raw.lower():
            return float(raw)
        return int(raw)
    except ValueError:
        pass
    if raw.startswith("[") and raw.endswith("]"):
        return json.loads(raw)
    if raw.startswith("{") and raw.endswith("}"):
        return json.loads(raw)
    return raw


def _assign_nested(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
    cursor = target
    parts = dotted_key.split(".")
    for part in parts[:-1]:
        cursor = cursor.setdefault(part, {})
    cursor[parts[-1]] = value
