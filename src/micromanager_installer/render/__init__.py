"""
Configuration rendering for the Micromanager stack.

`render` is a pure function: the same profile and inputs always produce
byte-identical documents, and nothing here touches the filesystem.
"""

from __future__ import annotations

from pathlib import Path

from ..core.config import InstallerSettings
from ..core.contracts import DeviceProfile, InstallMode, RenderedDocuments, WizardAnswers
from ..core.envfile import EnvDocument
from .compose import build_compose, device_bindings, render_compose
from .env import REGISTER_MARKER, apply_register_block, build_base_env, strip_register_block
from .nvr import build_nvr_config, render_nvr_config

DEFAULT_DEVICE_NAME = "micromanager"


def emulator_profile(settings: InstallerSettings) -> DeviceProfile:
    """Single register wired to the emulator pipe, used by the smoke-test modes."""
    return DeviceProfile.from_pairs([(str(settings.emulator_pipe), "POS1")])


def render(
    profile: DeviceProfile | None,
    prior_env: str | EnvDocument | None = None,
    *,
    settings: InstallerSettings | None = None,
    mode: InstallMode = InstallMode.PRODUCTION,
    answers: WizardAnswers | None = None,
    identity: str | None = None,
    frigate_storage: tuple[Path, Path] | None = None,
) -> RenderedDocuments:
    """
    Render the env document, the Frigate config and the compose manifest.

    In production mode ``prior_env``, when given, is used as the base document
    and only its register block is replaced; otherwise a fresh base is built
    from ``answers``. The smoke-test modes ignore ``profile`` and bind the
    emulator pipe instead.
    """

    settings = settings or InstallerSettings()
    answers = answers or WizardAnswers(device_name=DEFAULT_DEVICE_NAME)

    if mode is InstallMode.PRODUCTION:
        if profile is None:
            raise ValueError("Production rendering requires a device profile")
        if prior_env is None:
            base = build_base_env(
                mode,
                settings,
                answers=answers,
                identity=identity,
                frigate_storage=frigate_storage,
            )
        elif isinstance(prior_env, EnvDocument):
            base = prior_env
        else:
            base = EnvDocument.loads(prior_env)
        env_doc = apply_register_block(base, profile).dumps()
        return RenderedDocuments(
            env_doc=env_doc,
            nvr_doc=render_nvr_config(profile, settings.nvr),
            orchestration_doc=render_compose(settings, mode, profile),
        )

    env_doc = build_base_env(
        mode,
        settings,
        answers=answers,
        identity=identity,
        frigate_storage=frigate_storage,
    ).dumps()
    nvr_doc = None
    if mode.runs_nvr:
        nvr_doc = render_nvr_config(emulator_profile(settings), settings.nvr)
    return RenderedDocuments(
        env_doc=env_doc,
        nvr_doc=nvr_doc,
        orchestration_doc=render_compose(settings, mode),
    )


__all__ = [
    "REGISTER_MARKER",
    "apply_register_block",
    "build_base_env",
    "build_compose",
    "build_nvr_config",
    "device_bindings",
    "emulator_profile",
    "render",
    "render_compose",
    "render_nvr_config",
    "strip_register_block",
]
