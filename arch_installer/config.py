from __future__ import annotations

import dataclasses
import getpass
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ConfigurationError
from .lib.env import PATHS
from .lib.firmware import detect_boot_mode

logger = logging.getLogger(__name__)

ENV_PREFIX = "ARCH_INSTALL_"

DEFAULT_BASE_PACKAGES: Tuple[str, ...] = (
    "base",
    "base-devel",
    "linux",
    "linux-firmware",
    "linux-headers",
    "vim",
    "networkmanager",
    "sudo",
    "mkinitcpio",
    "dosfstools",
    "e2fsprogs",
    "efibootmgr",
    "grub",
)

DEFAULTS: Dict[str, Any] = {
    "disk": None,
    "hostname": "archlinux",
    "timezone": "UTC",
    "locale": "en_US.UTF-8",
    "keymap": "us",
    "root_password": None,
    "username": "arch",
    "user_password": None,
    "target_root": PATHS.target_root,
    "swap_size_mib": 4096,
    "esp_size_mib": 512,
    "base_packages": DEFAULT_BASE_PACKAGES,
    "mirror_country": None,
    "kernel_cmdline": "loglevel=3",
}

_SECRET_FIELDS = ("root_password", "user_password")
_INT_FIELDS = ("swap_size_mib", "esp_size_mib")
_REQUIRED_STR_FIELDS = (
    "disk",
    "hostname",
    "timezone",
    "locale",
    "keymap",
    "username",
    "target_root",
    "root_password",
    "user_password",
)


@dataclass(frozen=True)
class InstallConfig:
    disk: str
    boot_mode: str  # uefi|bios
    hostname: str
    timezone: str
    locale: str
    keymap: str
    root_password: str
    username: str
    user_password: str
    target_root: str = PATHS.target_root
    swap_size_mib: int = 4096
    esp_size_mib: int = 512
    base_packages: Tuple[str, ...] = DEFAULT_BASE_PACKAGES
    mirror_country: Optional[str] = None
    kernel_cmdline: str = "loglevel=3"

    def redacted(self) -> Dict[str, Any]:
        """Dict view safe for logs and diagnostic records."""

        data = dataclasses.asdict(self)
        for key in _SECRET_FIELDS:
            if data.get(key):
                data[key] = "********"
        data["base_packages"] = list(self.base_packages)
        return data


def load_config_file(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping/object")

    unknown = sorted(set(raw) - set(DEFAULTS))
    if unknown:
        raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    return raw


def _from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key in DEFAULTS:
        v = env.get(ENV_PREFIX + key.upper())
        if v is None or v == "":
            continue
        if key == "base_packages":
            values[key] = v.split()
        else:
            values[key] = v
    return values


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    for key in _INT_FIELDS:
        try:
            values[key] = int(values[key])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{key} must be an integer, got {values[key]!r}") from e
        if values[key] <= 0:
            raise ConfigurationError(f"{key} must be positive")

    pkgs = values["base_packages"]
    if isinstance(pkgs, str):
        pkgs = pkgs.split()
    if not isinstance(pkgs, (list, tuple)) or not all(isinstance(p, str) and p.strip() for p in pkgs):
        raise ConfigurationError(f"base_packages must be a list of package names, got {pkgs!r}")
    values["base_packages"] = tuple(p.strip() for p in pkgs)
    if not values["base_packages"]:
        raise ConfigurationError("base_packages must not be empty")

    for key in _REQUIRED_STR_FIELDS:
        v = values[key]
        if not isinstance(v, str) or not v.strip():
            shown = "********" if key in _SECRET_FIELDS else repr(v)
            raise ConfigurationError(f"{key} must be a non-empty string, got {shown}")
        if key not in _SECRET_FIELDS:
            values[key] = v.strip()

    if values["mirror_country"] is not None and not isinstance(values["mirror_country"], str):
        raise ConfigurationError(f"mirror_country must be a string, got {values['mirror_country']!r}")
    if not isinstance(values["kernel_cmdline"], str):
        raise ConfigurationError(f"kernel_cmdline must be a string, got {values['kernel_cmdline']!r}")

    values["target_root"] = os.path.normpath(values["target_root"])
    return values


def _prompt_password(label: str, *, getpass_fn: Callable[[str], str] = getpass.getpass) -> str:
    while True:
        first = getpass_fn(f"{label} password: ")
        if not first:
            print("Password must not be empty.")
            continue
        if getpass_fn(f"Repeat {label} password: ") == first:
            return first
        print("Passwords do not match, try again.")


def resolve_install_config(
    *,
    config_path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    select_disk: Optional[Callable[[], str]] = None,
    prompt_password: Optional[Callable[[str], str]] = None,
    boot_mode: Optional[str] = None,
) -> InstallConfig:
    """Build the run's InstallConfig.

    Precedence (lowest first): defaults, YAML file, ARCH_INSTALL_* environment,
    CLI overrides, interactive prompts for whatever is still missing. Boot mode
    comes from probing the firmware, never from user input.
    """

    values: Dict[str, Any] = dict(DEFAULTS)
    if config_path:
        values.update(load_config_file(config_path))
    values.update(_from_env(os.environ if env is None else env))
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    if not values.get("disk"):
        if select_disk is None:
            raise ConfigurationError("No target disk configured (use --disk or ARCH_INSTALL_DISK)")
        values["disk"] = select_disk()

    ask = prompt_password or _prompt_password
    if not values.get("root_password"):
        values["root_password"] = ask("root")
    if not values.get("user_password"):
        values["user_password"] = ask(str(values.get("username") or "user"))

    values = _coerce(values)
    cfg = InstallConfig(boot_mode=boot_mode or detect_boot_mode(), **values)
    logger.info("Resolved install config: %s", cfg.redacted())
    return cfg
