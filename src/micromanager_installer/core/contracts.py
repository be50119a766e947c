"""
Contracts shared between the installer steps.

The collector produces a `DeviceProfile`, the renderer turns it into
`RenderedDocuments`, and the writer persists those under `TargetPaths`. All of
them are frozen Pydantic models so a confirmed profile cannot drift while the
documents are being generated.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

MAX_REGISTERS = 4
IDENTITY_KEY = "MICROMANAGER_ID"
SUB_STREAM_SUFFIX = "_sub"


def stream_names(camera_name: str) -> tuple[str, str]:
    """Main and sub go2rtc stream identifiers derived from a camera name."""
    return camera_name, f"{camera_name}{SUB_STREAM_SUFFIX}"


class EnvironmentCheckError(RuntimeError):
    """Raised when the host cannot run the installer (privileges, OS)."""


class ExternalToolError(RuntimeError):
    """Raised when docker, curl or systemctl exits with a failure."""


class InstallMode(str, Enum):
    """Run profile selected on the command line."""

    PRODUCTION = "production"
    TEST = "test"
    TEST_FULL = "test-full"

    @property
    def uses_emulator(self) -> bool:
        return self is not InstallMode.PRODUCTION

    @property
    def runs_nvr(self) -> bool:
        return self is not InstallMode.TEST


class RegisterConfig(BaseModel):
    """One point-of-sale register bound to a serial port and a camera."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0, lt=MAX_REGISTERS)
    serial_port: str = Field(min_length=1)
    camera_name: str = Field(min_length=1)


class DeviceProfile(BaseModel):
    """Confirmed set of registers for one installation."""

    model_config = ConfigDict(frozen=True)

    registers: tuple[RegisterConfig, ...] = Field(min_length=1, max_length=MAX_REGISTERS)

    @model_validator(mode="after")
    def _check_registers(self) -> DeviceProfile:
        for expected, register in enumerate(self.registers):
            if register.index != expected:
                raise ValueError("register indices must be contiguous and start at 0")
        seen: set[str] = set()
        clashes: set[str] = set()
        for register in self.registers:
            for stream in stream_names(register.camera_name):
                if stream in seen:
                    clashes.add(stream)
                seen.add(stream)
        if clashes:
            raise ValueError(
                "camera names and their '_sub' streams must be unique, clashing: "
                + ", ".join(sorted(clashes))
            )
        return self

    @classmethod
    def from_pairs(cls, pairs: list[tuple[str, str]]) -> DeviceProfile:
        """Build a profile from ordered (serial_port, camera_name) pairs."""
        return cls(
            registers=tuple(
                RegisterConfig(index=index, serial_port=port, camera_name=name)
                for index, (port, name) in enumerate(pairs)
            )
        )

    @property
    def count(self) -> int:
        return len(self.registers)

    @property
    def serial_ports(self) -> list[str]:
        return [register.serial_port for register in self.registers]

    @property
    def camera_names(self) -> list[str]:
        return [register.camera_name for register in self.registers]


class HostProbe(BaseModel):
    """Facts gathered about the host before anything is written."""

    model_config = ConfigDict(frozen=True)

    serial_ports: tuple[str, ...] = Field(default=())
    has_nvme: bool = Field(default=False)
    is_raspberry_pi: bool = Field(default=False)
    model: str | None = Field(default=None)
    os_name: str | None = Field(default=None)
    os_version: str | None = Field(default=None)


class WizardAnswers(BaseModel):
    """Operator answers that land in the base environment document."""

    model_config = ConfigDict(frozen=True)

    device_name: str
    n8n_lines_url: str = Field(default="")
    n8n_txns_url: str = Field(default="")
    frigate_url: str = Field(default="")
    cloudflare_tunnel_token: str = Field(default="")


class TargetPaths(BaseModel):
    """Destination files for the rendered documents."""

    model_config = ConfigDict(frozen=True)

    env_file: Path
    nvr_file: Path
    compose_file: Path


class RenderedDocuments(BaseModel):
    """Text of the three generated artifacts, ready to be written."""

    model_config = ConfigDict(frozen=True)

    env_doc: str
    nvr_doc: str | None = Field(default=None)
    orchestration_doc: str


__all__ = [
    "IDENTITY_KEY",
    "MAX_REGISTERS",
    "DeviceProfile",
    "EnvironmentCheckError",
    "ExternalToolError",
    "HostProbe",
    "InstallMode",
    "RegisterConfig",
    "RenderedDocuments",
    "SUB_STREAM_SUFFIX",
    "TargetPaths",
    "WizardAnswers",
    "stream_names",
]
