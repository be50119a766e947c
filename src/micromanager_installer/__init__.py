"""
Micromanager installer - edge device setup

Detects the host, installs Docker, generates the environment file, the
Frigate configuration and the compose manifest for the Micromanager stack,
then starts the containers.
"""

__version__ = "0.1.0"

from micromanager_installer.core import (
    ConfigError,
    DeviceProfile,
    InstallerSettings,
    InstallMode,
    RegisterConfig,
)
from micromanager_installer.persist import persist
from micromanager_installer.render import render
from micromanager_installer.wizard import RegisterCollector

__all__ = [
    "ConfigError",
    "DeviceProfile",
    "InstallMode",
    "InstallerSettings",
    "RegisterCollector",
    "RegisterConfig",
    "persist",
    "render",
]
