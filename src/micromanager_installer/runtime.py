"""
Host-side setup steps that shell out to external tools.

Docker installation, directory layout, the emulator FIFO and the
``docker compose`` lifecycle. Every command runs synchronously; a non-zero exit
is raised as `ExternalToolError` and never retried.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
import tempfile
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from .core.config import InstallerSettings
from .core.contracts import ExternalToolError, InstallMode

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


def run_command(
    cmd: Sequence[str],
    *,
    cwd: Path | None = None,
    capture: bool = False,
) -> subprocess.CompletedProcess:
    """Run ``cmd`` to completion, raising `ExternalToolError` on failure."""

    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd else None,
            check=True,
            text=True,
            capture_output=capture,
        )
    except FileNotFoundError as exc:
        raise ExternalToolError(f"Command not found: {cmd[0]}") from exc
    except subprocess.CalledProcessError as exc:
        raise ExternalToolError(
            f"Command failed with exit code {exc.returncode}: {' '.join(cmd)}"
        ) from exc


class StackRuntime:
    """Drives docker and filesystem setup for one install directory."""

    def __init__(
        self,
        settings: InstallerSettings,
        *,
        runner: Runner = run_command,
        which: Callable[[str], str | None] = shutil.which,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._run = runner
        self._which = which
        self._sleep = sleep

    @property
    def install_dir(self) -> Path:
        return self._settings.install_dir

    def ensure_docker(self) -> bool:
        """Install Docker with the convenience script unless already present."""

        if self._which("docker"):
            version = self._run(["docker", "--version"], capture=True).stdout.strip()
            logger.info("Docker already installed: %s", version)
            return False

        logger.info("Installing Docker...")
        with tempfile.TemporaryDirectory() as workdir:
            script = Path(workdir) / "get-docker.sh"
            self._run(["curl", "-fsSL", self._settings.docker_install_url, "-o", str(script)])
            self._run(["sh", str(script)])

        sudo_user = os.environ.get("SUDO_USER")
        if sudo_user:
            self._run(["usermod", "-aG", "docker", sudo_user])
            logger.info("Added %s to docker group", sudo_user)

        self._run(["systemctl", "enable", "docker"])
        self._run(["systemctl", "start", "docker"])
        logger.info("Docker installed successfully")
        return True

    def setup_directories(self, mode: InstallMode, *, has_nvme: bool) -> tuple[Path, Path]:
        """Create the install tree and, outside app-only mode, Frigate storage."""

        logger.info("Creating directory structure...")
        self._settings.install_dir.mkdir(parents=True, exist_ok=True)
        self._settings.config_dir.mkdir(parents=True, exist_ok=True)
        media, db = self._settings.frigate_storage(has_nvme=has_nvme)
        if mode.runs_nvr:
            media.mkdir(parents=True, exist_ok=True)
            db.mkdir(parents=True, exist_ok=True)
            logger.info("Frigate storage: %s", media)
        return media, db

    def create_emulator_pipe(self) -> Path:
        """(Re)create the named pipe the smoke-test modes use as a serial port."""

        pipe = self._settings.emulator_pipe
        logger.info("Setting up emulator named pipe...")
        if pipe.exists() or pipe.is_symlink():
            pipe.unlink()
        os.mkfifo(pipe)
        os.chmod(pipe, 0o666)
        if not stat.S_ISFIFO(pipe.stat().st_mode):
            raise ExternalToolError(f"Failed to create named pipe at {pipe}")
        logger.info("Named pipe created: %s", pipe)
        return pipe

    def start_services(self) -> None:
        """Stop running containers, pull images and bring the stack up."""

        logger.info("Starting services...")
        compose = ["docker", "compose"]
        try:
            running = self._run([*compose, "ps", "--services"], cwd=self.install_dir, capture=True)
        except ExternalToolError:
            running = None
        if running is not None and running.stdout.strip():
            logger.info("Stopping existing containers...")
            try:
                self._run([*compose, "down", "--remove-orphans"], cwd=self.install_dir)
            except ExternalToolError as exc:
                logger.warning("Could not stop existing containers: %s", exc)
            self._sleep(2)

        logger.info("Pulling latest images...")
        self._run([*compose, "pull"], cwd=self.install_dir)
        logger.info("Starting containers...")
        self._run([*compose, "up", "-d", "--remove-orphans"], cwd=self.install_dir)
        self._sleep(5)
        logger.info("Services started successfully")


__all__ = ["Runner", "StackRuntime", "run_command"]
