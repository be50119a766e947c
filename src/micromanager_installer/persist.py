"""
Writes rendered documents to disk.

The env document is the only one with state worth keeping across runs: the
``MICROMANAGER_ID`` found in an existing file is carried over into the new
one. Each file is written independently; a failure leaves earlier files in
place and propagates to the caller.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from .core.contracts import IDENTITY_KEY, RenderedDocuments, TargetPaths
from .core.envfile import EnvDocument

logger = logging.getLogger(__name__)


def read_identity(env_file: Path) -> str | None:
    """Return the stored device id, or None when there is no usable one."""

    if not env_file.is_file():
        return None
    value = EnvDocument.loads(env_file.read_text(encoding="utf-8")).get(IDENTITY_KEY)
    return value.strip() if value and value.strip() else None


def new_identity() -> str:
    return str(uuid.uuid4())


def resolve_identity(env_file: Path) -> str:
    """Existing id if the env file has one, otherwise a freshly generated id."""

    existing = read_identity(env_file)
    if existing:
        logger.info("Preserving existing %s: %s", IDENTITY_KEY, existing)
        return existing
    identity = new_identity()
    logger.info("Generated new %s: %s", IDENTITY_KEY, identity)
    return identity


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(content)
    logger.info("Wrote %s", path)


def persist(
    docs: RenderedDocuments,
    targets: TargetPaths,
    *,
    identity: str | None = None,
) -> str:
    """
    Write ``docs`` to ``targets`` and return the device id that was stored.

    The id already present in ``targets.env_file`` wins over ``identity``;
    when neither exists a new one is generated.
    """

    final_identity = read_identity(targets.env_file) or identity or new_identity()
    env = EnvDocument.loads(docs.env_doc)
    env.set(IDENTITY_KEY, final_identity)

    _write(targets.env_file, env.dumps())
    if docs.nvr_doc is not None:
        _write(targets.nvr_file, docs.nvr_doc)
    _write(targets.compose_file, docs.orchestration_doc)
    return final_identity


__all__ = ["new_identity", "persist", "read_identity", "resolve_identity"]
