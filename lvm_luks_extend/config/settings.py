"""Settings storage for tunables.

No settings file is required: defaults apply unless an override file exists.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any


SETTINGS_PATH = Path(
    os.environ.get(
        "LVM_LUKS_EXTEND_SETTINGS_PATH",
        "/etc/lvm-luks-extend/settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_NEGLIGIBLE_ALLOCATION_GIB = "0.1"
DEFAULT_SETTLE_DELAY_SECONDS = 2.0

DEFAULT_SETTINGS: dict[str, Any] = {
    "negligible_allocation_gib": DEFAULT_NEGLIGIBLE_ALLOCATION_GIB,
    "settle_delay_seconds": DEFAULT_SETTLE_DELAY_SECONDS,
    "crypttab_path": "/etc/crypttab",
    "grub_defaults_path": "/etc/default/grub",
    "grub_config_output": "/boot/grub2/grub.cfg",
    "disk_name_prefixes": ["sd", "vd", "hd", "nvme", "xvd"],
    "container_name_prefix": "luks-",
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def get_decimal(key: str, default: str = "0") -> Decimal:
    value = get_setting(key, default)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal(default)


def get_float(key: str, default: float = 0.0) -> float:
    try:
        return float(get_setting(key, default))
    except (TypeError, ValueError):
        return default


load_settings()
