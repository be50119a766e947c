"""
Dynaconf-powered installer settings with Pydantic validation.

Every value the installer used to hard-code (install directory, image
tags, camera subnet, Frigate retention defaults, ...) lives here with the same
default, so an operator can override it from ``installer.yaml`` or from
``MICROMANAGER_INSTALLER_*`` environment variables without touching code.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from dynaconf import Dynaconf
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .contracts import MAX_REGISTERS, TargetPaths


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    """Case-insensitive dictionary lookup helper."""
    value = raw.get(key) or raw.get(key.upper()) or raw.get(key.lower())
    if isinstance(value, dict):
        return value
    return {}


def _lower_keys(raw: dict[str, Any]) -> dict[str, Any]:
    """Dynaconf upper-cases top-level keys; the models are declared lower-case."""
    result: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, dict):
            value = _lower_keys(value)
        result[str(key).lower()] = value
    return result


CONFIG_FILENAMES = ("installer.yaml", "secrets.yaml")
DEFAULT_CONFIG_DIR = Path("/etc/micromanager")
DEFAULT_INSTALL_DIR = Path("/opt/micromanager")
ENVVAR_PREFIX = "MICROMANAGER_INSTALLER"


class ConfigError(RuntimeError):
    """Raised when installer settings are missing or invalid."""


class ImageSettings(BaseModel):
    """Container images pulled by the generated manifest."""

    model_config = ConfigDict(extra="ignore")

    app: str = Field(default="ffty50/micromanager-app:latest")
    frigate: str = Field(default="ghcr.io/blakeblackshear/frigate:0.16.2")
    cloudflared: str = Field(default="cloudflare/cloudflared:latest")


class ProbeSettings(BaseModel):
    """Host paths inspected by the environment prober."""

    model_config = ConfigDict(extra="ignore")

    serial_globs: list[str] = Field(default_factory=lambda: ["/dev/ttyUSB*", "/dev/ttyACM*"])
    nvme_mount: Path = Field(default=Path("/mnt/nvme"))
    nvme_block_device: Path = Field(default=Path("/dev/nvme0n1"))
    os_release: Path = Field(default=Path("/etc/os-release"))
    device_model: Path = Field(default=Path("/proc/device-tree/model"))


class NvrSettings(BaseModel):
    """Fixed Frigate defaults and the placeholder camera addressing scheme."""

    model_config = ConfigDict(extra="ignore")

    camera_subnet: str = Field(default="10.7.7")
    base_host_suffix: int = Field(default=101, ge=1, le=254)
    rtsp_port: int = Field(default=554, ge=1, le=65535)
    main_stream_path: str = Field(default="/media/live/1/1")
    sub_stream_path: str = Field(default="/media/live/1/2")
    hwaccel_args: str = Field(default="preset-rpi-64-h264")
    detector_threads: int = Field(default=2, ge=1)
    record_retain_days: int = Field(default=60, ge=0)
    record_retain_mode: str = Field(default="motion")
    snapshot_retain_days: int = Field(default=60, ge=0)
    detect_width: int = Field(default=704, gt=0)
    detect_height: int = Field(default=480, gt=0)
    detect_fps: int = Field(default=5, gt=0)
    database_path: str = Field(default="/db/frigate.db")
    version: str = Field(default="0.16-0")

    @field_validator("camera_subnet")
    @classmethod
    def _three_octets(cls, value: str) -> str:
        parts = value.split(".")
        if len(parts) != 3 or not all(part.isdigit() and int(part) <= 255 for part in parts):
            raise ValueError("camera_subnet must look like '10.7.7'")
        return value

    @model_validator(mode="after")
    def _suffix_fits_all_registers(self) -> NvrSettings:
        if self.base_host_suffix + MAX_REGISTERS - 1 > 254:
            raise ValueError("base_host_suffix leaves no room for every register")
        return self

    def host_suffix(self, index: int) -> int:
        return self.base_host_suffix + index

    def host_address(self, index: int) -> str:
        return f"{self.camera_subnet}.{self.host_suffix(index)}"

    def stream_url(self, index: int, *, sub: bool = False) -> str:
        path = self.sub_stream_path if sub else self.main_stream_path
        return f"rtsp://{self.host_address(index)}:{self.rtsp_port}{path}"


class InstallerSettings(BaseModel):
    """
    Validated view of the merged installer configuration.

    Provides the derived target paths the renderer and writer need.
    """

    model_config = ConfigDict(extra="ignore")

    install_dir: Path = Field(default=DEFAULT_INSTALL_DIR)
    emulator_pipe: Path = Field(default=Path("/tmp/serial_txn"))
    serial_baud: int = Field(default=9600, gt=0)
    health_port: int = Field(default=3000, ge=1, le=65535)
    docker_install_url: str = Field(default="https://get.docker.com")
    images: ImageSettings = Field(default_factory=ImageSettings)
    probe: ProbeSettings = Field(default_factory=ProbeSettings)
    nvr: NvrSettings = Field(default_factory=NvrSettings)

    @field_validator("install_dir", "emulator_pipe", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value
        return Path(value)

    @property
    def config_dir(self) -> Path:
        return self.install_dir / "config"

    @property
    def log_file(self) -> Path:
        return self.install_dir / "installer.log"

    def target_paths(self) -> TargetPaths:
        return TargetPaths(
            env_file=self.install_dir / ".env",
            nvr_file=self.config_dir / "frigate.yml",
            compose_file=self.install_dir / "docker-compose.yml",
        )

    def frigate_storage(self, *, has_nvme: bool) -> tuple[Path, Path]:
        """Return the (media, db) directories Frigate should record into."""
        root = self.probe.nvme_mount if has_nvme else self.install_dir
        return root / "frigate" / "media", root / "frigate" / "db"


class ConfigService:
    """
    Loads installer settings from optional YAML files and the environment.
    """

    def __init__(
        self,
        *,
        config_dir: str | Path | None = None,
        settings: Dynaconf | None = None,
    ) -> None:
        explicit = config_dir is not None
        self._config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        settings_files = [self._config_dir / name for name in CONFIG_FILENAMES]
        existing_files = [str(path) for path in settings_files if path.exists()]
        if explicit and not existing_files:
            raise ConfigError(
                f"No configuration files found in {self._config_dir}. "
                "Expected at least installer.yaml."
            )

        self._settings = settings or Dynaconf(
            envvar_prefix=ENVVAR_PREFIX,
            settings_files=existing_files,
            environments=False,
        )
        self._snapshot = self._build_snapshot()

    @property
    def snapshot(self) -> InstallerSettings:
        """Latest validated settings."""
        return self._snapshot

    def apply_overrides(self, changes: dict[str, Any]) -> InstallerSettings:
        """Rebuild the snapshot with CLI-level overrides layered on top."""
        raw = _lower_keys(self._settings.as_dict())
        raw.update({key: value for key, value in changes.items() if value is not None})
        self._snapshot = self._build_snapshot(raw)
        return self._snapshot

    def _build_snapshot(self, raw: dict[str, Any] | None = None) -> InstallerSettings:
        data = self._extract_snapshot_data(raw or _lower_keys(self._settings.as_dict()))
        try:
            return InstallerSettings.model_validate(data)
        except ValidationError as exc:
            raise ConfigError("Installer configuration validation failed") from exc

    def _extract_snapshot_data(self, raw: dict[str, Any]) -> dict[str, Any]:
        data = {
            key: value
            for key, value in raw.items()
            if key in InstallerSettings.model_fields and not isinstance(value, dict)
        }
        data["images"] = _section(raw, "images")
        data["probe"] = _section(raw, "probe")
        data["nvr"] = _section(raw, "nvr") or _section(raw, "frigate")
        return data


__all__ = [
    "ConfigError",
    "ConfigService",
    "ImageSettings",
    "InstallerSettings",
    "NvrSettings",
    "ProbeSettings",
]
