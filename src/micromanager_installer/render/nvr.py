"""
Frigate configuration rendering.

Each register gets a main and a ``_sub`` go2rtc stream on a placeholder
address (``base_host_suffix + index``) and a camera entry that records the
main stream and detects on the sub stream.
"""

from __future__ import annotations

from typing import Any

from ..core.config import NvrSettings
from ..core.contracts import DeviceProfile, RegisterConfig, stream_names
from .documents import dump_document

HEADER = (
    "Frigate NVR Configuration",
    "Generated by micromanager-install - Edit camera IPs below",
)


def sub_stream_name(camera_name: str) -> str:
    return stream_names(camera_name)[1]


def _base_sections(nvr: NvrSettings) -> dict[str, Any]:
    return {
        "mqtt": {"enabled": False},
        "database": {"path": nvr.database_path},
        "ffmpeg": {"hwaccel_args": nvr.hwaccel_args},
        "tls": {"enabled": False},
        "detectors": {"cpu1": {"type": "cpu", "num_threads": nvr.detector_threads}},
        "record": {
            "enabled": True,
            "retain": {"days": nvr.record_retain_days, "mode": nvr.record_retain_mode},
        },
        "snapshots": {"enabled": True, "retain": {"default": nvr.snapshot_retain_days}},
    }


def _camera_entry(register: RegisterConfig, nvr: NvrSettings) -> dict[str, Any]:
    name = register.camera_name
    return {
        "enabled": True,
        "live": {"streams": {"Main Stream": sub_stream_name(name), "High Stream": name}},
        "ffmpeg": {
            "inputs": [
                {"path": nvr.stream_url(register.index), "roles": ["record"]},
                {"path": nvr.stream_url(register.index, sub=True), "roles": ["detect"]},
            ],
            "hwaccel_args": nvr.hwaccel_args,
        },
        "detect": {"width": nvr.detect_width, "height": nvr.detect_height, "fps": nvr.detect_fps},
        "motion": {"enabled": True},
    }


def build_nvr_config(profile: DeviceProfile, nvr: NvrSettings) -> dict[str, Any]:
    """Frigate config as plain data, registers in index order."""

    streams: dict[str, list[str]] = {}
    cameras: dict[str, Any] = {}
    for register in profile.registers:
        streams[register.camera_name] = [nvr.stream_url(register.index)]
        streams[sub_stream_name(register.camera_name)] = [nvr.stream_url(register.index, sub=True)]
        cameras[register.camera_name] = _camera_entry(register, nvr)

    config = _base_sections(nvr)
    config["go2rtc"] = {"streams": streams}
    config["cameras"] = cameras
    config["version"] = nvr.version
    return config


def render_nvr_config(profile: DeviceProfile, nvr: NvrSettings) -> str:
    return dump_document(build_nvr_config(profile, nvr), header=HEADER)


__all__ = ["build_nvr_config", "render_nvr_config", "sub_stream_name"]
