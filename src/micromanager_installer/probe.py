"""
Host inspection performed before anything is written.

Only reads the filesystem. Missing serial ports or storage simply yield empty
results; missing privileges or an unknown OS are the only fatal conditions.
"""

from __future__ import annotations

import glob
import logging
import os
import stat
from collections.abc import Sequence
from pathlib import Path

from .core.config import InstallerSettings, ProbeSettings
from .core.contracts import EnvironmentCheckError, HostProbe

logger = logging.getLogger(__name__)


def probe_serial_ports(patterns: Sequence[str]) -> list[str]:
    """Return existing device paths for each glob pattern, in pattern order."""

    found: list[str] = []
    for pattern in patterns:
        for path in sorted(glob.glob(pattern)):
            if path not in found and os.path.exists(path):
                found.append(path)
    return found


def has_fast_storage(mount: Path, block_device: Path) -> bool:
    """True when an NVMe mount directory or block device is present."""

    if mount.is_dir():
        return True
    try:
        return stat.S_ISBLK(block_device.stat().st_mode)
    except OSError:
        return False


def read_os_release(path: Path) -> dict[str, str]:
    """Parse ``/etc/os-release``; raise when the OS cannot be identified."""

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EnvironmentCheckError(
            "Cannot detect OS. This installer supports Debian/Ubuntu/Raspberry Pi OS."
        ) from exc

    fields: dict[str, str] = {}
    for line in content.splitlines():
        if "=" not in line or line.lstrip().startswith("#"):
            continue
        key, _, value = line.partition("=")
        fields[key.strip()] = value.strip().strip('"').strip("'")
    return fields


def read_device_model(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="ignore").strip("\x00\n ") or None
    except OSError:
        return None


def require_root() -> None:
    if os.geteuid() != 0:
        raise EnvironmentCheckError("This installer must be run as root (use sudo)")


def probe_host(settings: ProbeSettings | InstallerSettings) -> HostProbe:
    """Collect serial ports, storage and platform facts for the installer."""

    probe_settings = settings.probe if isinstance(settings, InstallerSettings) else settings
    os_release = read_os_release(probe_settings.os_release)
    model = read_device_model(probe_settings.device_model)
    is_pi = bool(model and "Raspberry Pi" in model)
    if is_pi:
        logger.info("Detected: %s", model)
    else:
        logger.info("Detected: %s %s", os_release.get("NAME"), os_release.get("VERSION_ID", ""))

    has_nvme = has_fast_storage(probe_settings.nvme_mount, probe_settings.nvme_block_device)
    if has_nvme:
        logger.info("NVMe storage detected")

    ports = probe_serial_ports(probe_settings.serial_globs)
    if ports:
        logger.info("Serial ports found: %s", " ".join(ports))
    else:
        logger.info("No serial ports detected (will use emulator for testing)")

    return HostProbe(
        serial_ports=tuple(ports),
        has_nvme=has_nvme,
        is_raspberry_pi=is_pi,
        model=model,
        os_name=os_release.get("NAME"),
        os_version=os_release.get("VERSION_ID"),
    )


__all__ = [
    "has_fast_storage",
    "probe_host",
    "probe_serial_ports",
    "read_device_model",
    "read_os_release",
    "require_root",
]
