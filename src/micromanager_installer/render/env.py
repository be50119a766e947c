"""
Environment document rendering.

The base document depends on the install mode. In production mode the
per-register block (``SERIAL_PORT_{i}`` / ``FRIGATE_CAMERA_{i}``) is appended
after any previous block has been stripped, so re-rendering never leaves keys
behind from a larger register count.
"""

from __future__ import annotations

import re
from pathlib import Path

from ..core.config import InstallerSettings
from ..core.contracts import IDENTITY_KEY, DeviceProfile, InstallMode, WizardAnswers
from ..core.envfile import EnvDocument

REGISTER_MARKER = "Multi-POS Configuration (Per-Port Camera Mapping)"
REGISTER_KEYS = re.compile(r"^(SERIAL_PORT|FRIGATE_CAMERA)_[0-3]$")
REGISTER_COMMENTS = re.compile(r"^#\s*(POS Position\b|Multi-POS Configuration\b)")

FRIGATE_BASE_URL = "http://frigate:5000"
FRIGATE_LOCAL_URL = "http://localhost:8971"
PLACEHOLDER_TUNNEL_TOKEN = "placeholder_token_for_testing"

_TITLES = {
    InstallMode.PRODUCTION: "Micromanager Production Configuration",
    InstallMode.TEST: "Micromanager Test Configuration",
    InstallMode.TEST_FULL: "Micromanager Full Stack Test Configuration",
}


def _section(doc: EnvDocument, title: str) -> None:
    doc.add_blank()
    doc.add_comment(title)


def build_base_env(
    mode: InstallMode,
    settings: InstallerSettings,
    *,
    answers: WizardAnswers,
    identity: str | None = None,
    frigate_storage: tuple[Path, Path] | None = None,
) -> EnvDocument:
    """Render the mode-specific base document (everything but the register block)."""

    media_path, db_path = frigate_storage or settings.frigate_storage(has_nvme=False)
    doc = EnvDocument()
    doc.add_comment(_TITLES[mode])
    doc.add_comment(
        "Generated by micromanager-install"
        + ("" if mode is InstallMode.PRODUCTION else f" --{mode.value}")
    )

    _section(doc, "Device")
    doc.add("DEVICE_NAME", answers.device_name)
    doc.add(IDENTITY_KEY, identity or "")

    if mode.uses_emulator:
        _section(doc, "Serial (using emulator pipe)")
        doc.add("SERIAL_PORTS", str(settings.emulator_pipe))
        doc.add("SERIAL_BAUD", str(settings.serial_baud))
        _section(doc, "Webhooks (disabled for testing)")
        doc.add_comment("N8N_LINES_URL=")
        doc.add_comment("N8N_TXNS_URL=")
    else:
        _section(doc, "Serial baud rate (applies to all ports)")
        doc.add("SERIAL_BAUD", str(settings.serial_baud))
        _section(doc, "n8n Webhook URLs")
        doc.add("N8N_LINES_URL", answers.n8n_lines_url)
        doc.add("N8N_TXNS_URL", answers.n8n_txns_url)

    if mode is InstallMode.TEST:
        _section(doc, "Frigate (disabled in test mode)")
        doc.add("FRIGATE_ENABLED", "false")
    else:
        if mode is InstallMode.TEST_FULL:
            _section(doc, "Frigate (enabled, internal network)")
            doc.add("FRIGATE_ENABLED", "true")
            doc.add("FRIGATE_BASE", FRIGATE_BASE_URL)
            doc.add("FRIGATE_URL", answers.frigate_url or FRIGATE_LOCAL_URL)
            doc.add("FRIGATE_CAMERA_NAME", "POS1")
        else:
            _section(doc, "Frigate Integration")
            doc.add("FRIGATE_ENABLED", "true")
            doc.add("FRIGATE_BASE", FRIGATE_BASE_URL)
            doc.add("FRIGATE_URL", answers.frigate_url)

        _section(doc, "Frigate storage paths")
        doc.add("FRIGATE_MEDIA_PATH", str(media_path))
        doc.add("FRIGATE_DB_PATH", str(db_path))

        if mode is InstallMode.TEST_FULL:
            _section(doc, "Cloudflare (placeholder - tunnel won't connect)")
            doc.add(
                "CLOUDFLARE_TUNNEL_TOKEN",
                answers.cloudflare_tunnel_token or PLACEHOLDER_TUNNEL_TOKEN,
            )
        else:
            _section(doc, "Cloudflare Tunnel")
            doc.add("CLOUDFLARE_TUNNEL_TOKEN", answers.cloudflare_tunnel_token)

    _section(doc, "Health server")
    doc.add("HEALTH_PORT", str(settings.health_port))
    doc.add("HEALTH_HOST", "0.0.0.0")
    return doc


def strip_register_block(doc: EnvDocument) -> EnvDocument:
    """Copy of ``doc`` without register keys, their comments or trailing blanks."""

    stripped = doc.copy()
    stripped.remove(key_pattern=REGISTER_KEYS, comment_pattern=REGISTER_COMMENTS)
    lines = list(stripped)
    while lines and lines[-1].is_blank:
        lines.pop()
    return EnvDocument(lines)


def apply_register_block(doc: EnvDocument, profile: DeviceProfile) -> EnvDocument:
    """Replace any previous register block with one rendered from ``profile``."""

    result = strip_register_block(doc)
    result.add_blank()
    result.add_comment(REGISTER_MARKER)
    for register in profile.registers:
        result.add_comment(f"POS Position {register.index}")
        result.add(f"SERIAL_PORT_{register.index}", register.serial_port)
        result.add(f"FRIGATE_CAMERA_{register.index}", register.camera_name)
    return result


__all__ = [
    "REGISTER_KEYS",
    "REGISTER_MARKER",
    "apply_register_block",
    "build_base_env",
    "strip_register_block",
]
