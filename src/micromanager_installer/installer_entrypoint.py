"""
CLI entrypoint for the Micromanager edge installer.

Runs the install as a linear sequence of idempotent steps: detect the host,
install Docker, lay out directories, generate ``.env``, ``frigate.yml`` and
``docker-compose.yml`` (through the wizard in production mode) and start the
stack. Re-running it regenerates everything while keeping the device id.
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import socket
from collections.abc import Sequence
from pathlib import Path

from .core.config import ConfigError, ConfigService, InstallerSettings
from .core.contracts import (
    DeviceProfile,
    EnvironmentCheckError,
    ExternalToolError,
    HostProbe,
    InstallMode,
    WizardAnswers,
)
from .persist import persist, resolve_identity
from .probe import probe_host, require_root
from .render import render
from .runtime import StackRuntime
from .wizard import RULE, Ask, Echo, RegisterCollector, ask_wizard_answers, section_header

LOGGER = logging.getLogger(__name__)
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DOCS_URL = "https://github.com/FFTY50/micromanager-app"


def _ensure_rotating_file_handler(
    log_file: Path,
    *,
    max_mb: int = 10,
    backup_count: int = 3,
) -> None:
    """Attach a rotating file handler pointed at ``log_file`` if missing."""

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create log directory %s: %s", log_file.parent, exc)
        return

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            existing = getattr(handler, "baseFilename", None)
            if existing and Path(existing) == log_file:
                return

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)


def configure_logging(level: str, log_file: Path | None = None) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
    )
    if log_file is not None:
        _ensure_rotating_file_handler(log_file)


def banner() -> str:
    return "\n".join(
        [
            "╔════════════════════════════════════════════════════════════════╗",
            "║          Micromanager IoT Stack Installer                      ║",
            "║          $50 Manager Edge Device Setup                         ║",
            "╚════════════════════════════════════════════════════════════════╝",
            "",
        ]
    )


def next_steps(
    mode: InstallMode,
    settings: InstallerSettings,
    profile: DeviceProfile | None = None,
) -> str:
    """Operator instructions printed once the stack is running."""

    install_dir = settings.install_dir
    compose_file = install_dir / "docker-compose.yml"
    nvr_file = settings.target_paths().nvr_file
    lines: list[str] = [""]

    if mode is InstallMode.TEST:
        lines += [
            "Micromanager Test Install Complete!",
            "(Frigate and Cloudflared skipped in test mode)",
            "",
            "Next Steps:",
            "  1. Run the emulator to generate test transactions:",
            "     docker exec -it micromanager-app npm run emulator -- --random --burst 5",
            "  2. Watch transactions flow through:",
            "     docker logs -f micromanager-app | grep -i transaction",
            "  3. Check metrics:",
            f"     curl http://localhost:{settings.health_port}/metrics",
            "  4. For production config, re-run without --test:",
            "     sudo micromanager-install",
        ]
    elif mode is InstallMode.TEST_FULL:
        lines += [
            "$50 Manager Full Stack Test Install Complete!",
            "",
            "Services running:",
            f"  ✓ micromanager-app  (POS parsing)     http://localhost:{settings.health_port}",
            "  ✓ frigate           (NVR)             http://localhost:8971",
            "  ⚠ cloudflared       (tunnel)          Placeholder token - not connected",
            "",
            "Next Steps:",
            "  1. Run the emulator to generate test transactions:",
            "     docker exec -it micromanager-app npm run emulator -- --random --burst 5",
            "  2. Watch transactions with video bookmarks:",
            "     docker logs -f micromanager-app | grep -i frigate",
            "  3. Check Frigate for bookmarks:",
            "     http://localhost:8971",
            "  4. Edit Frigate camera config:",
            f"     nano {nvr_file}",
            f"     docker compose -f {compose_file} restart frigate",
            "  5. To connect tunnel, add real token:",
            f"     nano {install_dir / '.env'}",
            f"     docker compose -f {compose_file} restart cloudflared",
        ]
    else:
        lines += [
            "$50 Manager IoT Stack Installed Successfully!",
            "",
            "Services running:",
            f"  ✓ micromanager-app  (POS parsing)     http://localhost:{settings.health_port}",
            "  ✓ frigate           (NVR)             http://localhost:8971",
            "  ✓ cloudflared       (tunnel)          Active",
            "",
        ]
        if profile is not None:
            lines.append("POS Configuration:")
            for register in profile.registers:
                lines.append(
                    f"  Position {register.index}: {register.serial_port} → {register.camera_name}"
                )
            lines.append("")
        lines += [
            "Next Steps:",
            "  1. IMPORTANT: Edit camera IP addresses in Frigate config:",
            f"     nano {nvr_file}",
            f"     (Replace {settings.nvr.camera_subnet}.{settings.nvr.base_host_suffix // 10}X"
            " with your actual camera IPs)",
            f"     docker compose -f {compose_file} restart frigate",
            "  2. Access Frigate UI to verify cameras:",
            "     http://localhost:8971",
            "  3. Test POS connection:",
            "     docker logs -f micromanager-app",
            "  4. Edit configuration if needed:",
            f"     nano {install_dir / '.env'}",
            f"     docker compose -f {compose_file} restart",
        ]

    lines += ["", RULE, f"Install directory: {install_dir}", f"Documentation: {DOCS_URL}", RULE, ""]
    return "\n".join(lines)


def run_install(
    settings: InstallerSettings,
    mode: InstallMode,
    *,
    runtime: StackRuntime | None = None,
    host: HostProbe | None = None,
    ask: Ask = input,
    echo: Echo = print,
    start: bool = True,
    check_privileges: bool = True,
) -> DeviceProfile | None:
    """
    Execute every install step for ``mode``.

    Returns the confirmed profile in production mode, None otherwise.
    """

    echo(banner())
    LOGGER.info("Install mode: %s", mode.value)

    if check_privileges:
        require_root()
    host = host or probe_host(settings)
    runtime = runtime or StackRuntime(settings)

    runtime.ensure_docker()
    frigate_storage = runtime.setup_directories(mode, has_nvme=host.has_nvme)
    if mode.uses_emulator:
        runtime.create_emulator_pipe()

    targets = settings.target_paths()
    identity = resolve_identity(targets.env_file)

    profile: DeviceProfile | None = None
    if mode is InstallMode.PRODUCTION:
        echo(section_header("Configuration Wizard"))
        profile = RegisterCollector(host.serial_ports, ask=ask, echo=echo).collect()
        answers = ask_wizard_answers(ask=ask, echo=echo)
    else:
        answers = WizardAnswers(device_name=socket.gethostname())

    LOGGER.info("Generating environment, Frigate and Docker Compose configuration...")
    docs = render(
        profile,
        settings=settings,
        mode=mode,
        answers=answers,
        identity=identity,
        frigate_storage=frigate_storage,
    )
    persist(docs, targets, identity=identity)
    if docs.nvr_doc is not None and mode is InstallMode.PRODUCTION:
        LOGGER.warning("Edit camera IP addresses in %s to match your setup", targets.nvr_file)
    LOGGER.info("Configuration complete!")

    if start:
        runtime.start_services()
    else:
        LOGGER.info("Skipping container start (--no-start)")
    echo(next_steps(mode, settings, profile))
    return profile


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="micromanager-install",
        description="Micromanager IoT Stack Installer.",
        epilog="Without options, runs full production install with interactive wizard.",
    )
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument(
        "--test",
        dest="mode",
        action="store_const",
        const=InstallMode.TEST,
        help="Install Micromanager only with emulator support (fastest).",
    )
    modes.add_argument(
        "--test-full",
        dest="mode",
        action="store_const",
        const=InstallMode.TEST_FULL,
        help="Install full stack with emulator support (integration testing).",
    )
    parser.set_defaults(mode=InstallMode.PRODUCTION)
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory that contains installer.yaml/secrets.yaml (default: /etc/micromanager).",
    )
    parser.add_argument(
        "--install-dir",
        type=Path,
        default=None,
        help="Override the installation directory (default: /opt/micromanager).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO).",
    )
    parser.add_argument(
        "--no-start",
        action="store_true",
        help="Generate configuration without pulling or starting containers.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        config_service = ConfigService(config_dir=args.config_dir)
        settings = config_service.apply_overrides({"install_dir": args.install_dir})
        _ensure_rotating_file_handler(settings.log_file)
        run_install(settings, args.mode, start=not args.no_start)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user.")
        return 130
    except ConfigError as exc:
        LOGGER.error("Configuration failed: %s", exc)
        return 2
    except EnvironmentCheckError as exc:
        LOGGER.error("%s", exc)
        return 1
    except ExternalToolError as exc:
        LOGGER.error("External tool failed: %s", exc)
        return 1
    except OSError as exc:
        LOGGER.error("File operation failed: %s", exc)
        return 1
    return 0


__all__ = ["main", "next_steps", "parse_args", "run_install"]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
