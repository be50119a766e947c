from __future__ import annotations

import textwrap
from collections.abc import Iterable
from pathlib import Path

import pytest

from micromanager_installer.core.config import ConfigService, InstallerSettings


def _write_yaml(path: Path, content: str) -> None:
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")


class ScriptedPrompt:
    """Feeds canned answers to ``ask`` and records everything echoed."""

    def __init__(self, answers: Iterable[str]) -> None:
        self._answers = list(answers)
        self.prompts: list[str] = []
        self.output: list[str] = []

    def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self._answers:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return self._answers.pop(0)

    def echo(self, text: str = "") -> None:
        self.output.append(text)

    @property
    def remaining(self) -> int:
        return len(self._answers)

    @property
    def transcript(self) -> str:
        return "\n".join(self.output)


@pytest.fixture
def scripted_prompt():
    """Factory returning a `ScriptedPrompt` for the given answers."""

    return ScriptedPrompt


@pytest.fixture
def sample_config_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary configuration directory for tests.
    """

    config_dir = tmp_path / "etc"
    config_dir.mkdir()
    install_dir = tmp_path / "opt" / "micromanager"
    config_yaml = f"""
    install_dir: "{install_dir.as_posix()}"
    emulator_pipe: "{(tmp_path / 'serial_txn').as_posix()}"
    serial_baud: 19200

    images:
      app: "ffty50/micromanager-app:1.2.3"

    probe:
      serial_globs:
        - "{(tmp_path / 'dev' / 'ttyUSB*').as_posix()}"
        - "{(tmp_path / 'dev' / 'ttyACM*').as_posix()}"
      nvme_mount: "{(tmp_path / 'mnt' / 'nvme').as_posix()}"
      nvme_block_device: "{(tmp_path / 'dev' / 'nvme0n1').as_posix()}"

    nvr:
      camera_subnet: "192.168.50"
      detector_threads: 4
    """
    _write_yaml(config_dir / "installer.yaml", config_yaml)
    return config_dir


@pytest.fixture
def sample_config_service(sample_config_dir: Path) -> ConfigService:
    """Return a ConfigService wired to the temporary configuration."""

    return ConfigService(config_dir=sample_config_dir)


@pytest.fixture
def settings(tmp_path: Path) -> InstallerSettings:
    """Default settings with every host path redirected into ``tmp_path``."""

    return InstallerSettings(
        install_dir=tmp_path / "opt" / "micromanager",
        emulator_pipe=tmp_path / "serial_txn",
        probe={
            "serial_globs": [
                (tmp_path / "dev" / "ttyUSB*").as_posix(),
                (tmp_path / "dev" / "ttyACM*").as_posix(),
            ],
            "nvme_mount": tmp_path / "mnt" / "nvme",
            "nvme_block_device": tmp_path / "dev" / "nvme0n1",
            "os_release": tmp_path / "os-release",
            "device_model": tmp_path / "model",
        },
    )
