from pathlib import Path

import pytest
from dotenv import dotenv_values

from micromanager_installer.core.contracts import RenderedDocuments, TargetPaths
from micromanager_installer.persist import persist, read_identity, resolve_identity


def _targets(root: Path) -> TargetPaths:
    return TargetPaths(
        env_file=root / ".env",
        nvr_file=root / "config" / "frigate.yml",
        compose_file=root / "docker-compose.yml",
    )


def _docs(nvr_doc: str | None = "cameras: {}\n") -> RenderedDocuments:
    return RenderedDocuments(
        env_doc="DEVICE_NAME=edge\nSERIAL_PORT_0=/dev/ttyUSB0\n",
        nvr_doc=nvr_doc,
        orchestration_doc="services: {}\n",
    )


def test_existing_identity_is_preserved(tmp_path: Path) -> None:
    targets = _targets(tmp_path)
    targets.env_file.write_text("MICROMANAGER_ID=abc123\nDEVICE_NAME=old\n")

    identity = persist(_docs(), targets, identity="ignored")

    assert identity == "abc123"
    values = dotenv_values(targets.env_file)
    assert values["MICROMANAGER_ID"] == "abc123"
    assert values["DEVICE_NAME"] == "edge"


def test_identity_is_generated_when_absent(tmp_path: Path) -> None:
    targets = _targets(tmp_path)
    identity = persist(_docs(), targets)

    assert len(identity) == 36
    assert dotenv_values(targets.env_file)["MICROMANAGER_ID"] == identity


def test_passed_identity_is_used_for_fresh_install(tmp_path: Path) -> None:
    targets = _targets(tmp_path)
    assert persist(_docs(), targets, identity="from-wizard") == "from-wizard"


def test_identity_is_read_from_quoted_or_exported_lines(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("# MICROMANAGER_ID=stale\nexport MICROMANAGER_ID='abc 123'\n")
    assert read_identity(env_file) == "abc 123"


def test_blank_identity_counts_as_missing(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("MICROMANAGER_ID=\n")
    assert read_identity(env_file) is None
    assert resolve_identity(env_file) != ""


def test_writes_all_documents_and_creates_parents(tmp_path: Path) -> None:
    targets = _targets(tmp_path / "opt" / "micromanager")
    persist(_docs(), targets)

    assert targets.nvr_file.read_text() == "cameras: {}\n"
    assert targets.compose_file.read_text() == "services: {}\n"
    assert targets.env_file.read_text().startswith("DEVICE_NAME=edge\n")


def test_missing_nvr_document_is_not_written(tmp_path: Path) -> None:
    targets = _targets(tmp_path)
    persist(_docs(nvr_doc=None), targets)

    assert not targets.nvr_file.exists()
    assert targets.compose_file.exists()


def test_write_failure_propagates(tmp_path: Path) -> None:
    targets = _targets(tmp_path)
    targets.compose_file.mkdir()

    with pytest.raises(OSError):
        persist(_docs(), targets)

    assert targets.env_file.exists()
