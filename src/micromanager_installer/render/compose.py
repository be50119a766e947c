"""
Docker Compose manifest rendering.

Only the app service's ``devices`` list depends on the register count. In the
smoke-test modes the emulator pipe is mounted as a volume instead.
"""

from __future__ import annotations

from typing import Any

from ..core.config import InstallerSettings
from ..core.contracts import DeviceProfile, InstallMode
from .documents import dump_document

NETWORK = "nvrnet"
DATA_VOLUME = "micromanager-data"

_HEADERS = {
    InstallMode.PRODUCTION: "Micromanager Production Configuration",
    InstallMode.TEST: "Micromanager Test Configuration (Micromanager only)",
    InstallMode.TEST_FULL: "Micromanager Full Stack Test Configuration",
}


def device_bindings(profile: DeviceProfile) -> list[str]:
    """One ``host:container`` binding per register, passed through verbatim."""
    return [f"{port}:{port}" for port in profile.serial_ports]


def _app_service(
    settings: InstallerSettings,
    mode: InstallMode,
    profile: DeviceProfile | None,
) -> dict[str, Any]:
    service: dict[str, Any] = {
        "image": settings.images.app,
        "container_name": "micromanager-app",
        "restart": "unless-stopped",
    }
    if mode.runs_nvr:
        service["networks"] = [NETWORK]
    if mode is InstallMode.PRODUCTION and profile is not None:
        service["devices"] = device_bindings(profile)
    volumes = [f"{DATA_VOLUME}:/var/lib/micromanager"]
    if mode.uses_emulator:
        pipe = str(settings.emulator_pipe)
        volumes.append(f"{pipe}:{pipe}")
    service["volumes"] = volumes
    service["env_file"] = [".env"]
    service["ports"] = [f"{settings.health_port}:{settings.health_port}"]
    if mode.runs_nvr:
        service["depends_on"] = ["frigate"]
    service["logging"] = {
        "driver": "json-file",
        "options": {"max-size": "10m", "max-file": "3"},
    }
    return service


def _frigate_service(settings: InstallerSettings) -> dict[str, Any]:
    return {
        "image": settings.images.frigate,
        "container_name": "frigate",
        "privileged": True,
        "restart": "unless-stopped",
        "shm_size": "1g",
        "networks": [NETWORK],
        "ports": ["8971:8971", "127.0.0.1:5000:5000"],
        "volumes": [
            "./config:/config",
            "${FRIGATE_MEDIA_PATH}:/media/frigate",
            "${FRIGATE_DB_PATH}:/db",
            "/etc/localtime:/etc/localtime:ro",
            {"type": "tmpfs", "target": "/tmp/cache", "tmpfs": {"size": 512000000}},
        ],
        "devices": ["/dev/dri:/dev/dri", "/dev/bus/usb:/dev/bus/usb"],
        "environment": {"FRIGATE_RTSP_PASSWORD": ""},
    }


def _tunnel_service(settings: InstallerSettings) -> dict[str, Any]:
    return {
        "image": settings.images.cloudflared,
        "container_name": "cloudflared",
        "restart": "unless-stopped",
        "networks": [NETWORK],
        "command": 'tunnel --no-autoupdate run --token "${CLOUDFLARE_TUNNEL_TOKEN}"',
        "depends_on": ["frigate"],
        "extra_hosts": ["host.docker.internal:host-gateway"],
    }


def build_compose(
    settings: InstallerSettings,
    mode: InstallMode,
    profile: DeviceProfile | None = None,
) -> dict[str, Any]:
    manifest: dict[str, Any] = {}
    if mode.runs_nvr:
        manifest["networks"] = {NETWORK: {"name": NETWORK}}
    services: dict[str, Any] = {"micromanager": _app_service(settings, mode, profile)}
    if mode.runs_nvr:
        services["frigate"] = _frigate_service(settings)
        services["cloudflared"] = _tunnel_service(settings)
    manifest["services"] = services
    manifest["volumes"] = {DATA_VOLUME: None}
    return manifest


def render_compose(
    settings: InstallerSettings,
    mode: InstallMode,
    profile: DeviceProfile | None = None,
) -> str:
    header = [_HEADERS[mode]]
    if mode is InstallMode.PRODUCTION and profile is not None:
        header.append(f"Generated by micromanager-install - {profile.count} POS register(s)")
    else:
        header.append(
            "Generated by micromanager-install"
            + ("" if mode is InstallMode.PRODUCTION else f" --{mode.value}")
        )
    return dump_document(build_compose(settings, mode, profile), header=header)


__all__ = ["build_compose", "device_bindings", "render_compose"]
