"""
Core types shared by the installer steps.

Exposes the settings service, the immutable register/profile contracts and the
env-file document model used by the renderer and the persistence writer.
"""

from .config import ConfigError, ConfigService, InstallerSettings, NvrSettings
from .contracts import (
    DeviceProfile,
    EnvironmentCheckError,
    ExternalToolError,
    HostProbe,
    InstallMode,
    RegisterConfig,
    RenderedDocuments,
    TargetPaths,
    WizardAnswers,
)
from .envfile import EnvDocument

__all__ = [
    "ConfigError",
    "ConfigService",
    "DeviceProfile",
    "EnvDocument",
    "EnvironmentCheckError",
    "ExternalToolError",
    "HostProbe",
    "InstallMode",
    "InstallerSettings",
    "NvrSettings",
    "RegisterConfig",
    "RenderedDocuments",
    "TargetPaths",
    "WizardAnswers",
]
