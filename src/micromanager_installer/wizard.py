"""
Interactive collection of the per-device configuration.

`RegisterCollector` asks for the number of POS registers and, for each one,
the serial port and the Frigate camera name. `ask_wizard_answers` gathers the
remaining production settings (device name, webhooks, tunnel token).

Both take ``ask``/``echo`` callables so they can be scripted in tests.
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Callable, Sequence

from .core.contracts import (
    MAX_REGISTERS,
    DeviceProfile,
    RegisterConfig,
    WizardAnswers,
    stream_names,
)

logger = logging.getLogger(__name__)

Ask = Callable[[str], str]
Echo = Callable[[str], None]

RULE = "━" * 66
COUNT_CHOICES = tuple(str(count) for count in range(1, MAX_REGISTERS + 1))


def default_serial_port(index: int, detected: Sequence[str]) -> str:
    if index < len(detected):
        return detected[index]
    return f"/dev/ttyUSB{index}"


def default_camera_name(index: int) -> str:
    return f"POS{index + 1}"


def section_header(title: str) -> str:
    return f"\n{RULE}\n{title.center(66).rstrip()}\n{RULE}\n"


def render_summary(profile: DeviceProfile) -> str:
    """Box table of position / serial port / camera name."""

    lines = [
        "┌──────────┬─────────────────┬────────────────────┐",
        "│ Position │ Serial Port     │ Camera Name        │",
        "├──────────┼─────────────────┼────────────────────┤",
    ]
    for register in profile.registers:
        lines.append(
            f"│ {register.index:<8} │ {register.serial_port:<15} │ {register.camera_name:<18} │"
        )
    lines.append("└──────────┴─────────────────┴────────────────────┘")
    return "\n".join(lines)


class RegisterCollector:
    """Prompts for 1-4 register bindings until the operator confirms them."""

    def __init__(
        self,
        detected_ports: Sequence[str] = (),
        *,
        ask: Ask = input,
        echo: Echo = print,
    ) -> None:
        self._detected = list(detected_ports)
        self._ask = ask
        self._echo = echo

    def collect(self) -> DeviceProfile:
        self._echo(section_header("Multi-POS Configuration"))
        while True:
            self._show_detected_ports()
            count = self._ask_count()
            logger.info("Configuring %d POS register(s)...", count)
            registers: list[RegisterConfig] = []
            for index in range(count):
                registers.append(self._ask_register(index, registers))
            profile = DeviceProfile(registers=tuple(registers))

            self._echo("POS Configuration Summary:")
            self._echo(render_summary(profile))
            self._echo("")
            if self._confirm():
                return profile
            logger.info("Configuration rejected; starting over.")

    def _show_detected_ports(self) -> None:
        if self._detected:
            self._echo("Detected serial ports:")
            for index, port in enumerate(self._detected):
                self._echo(f"  [{index}] {port}")
        else:
            self._echo("No serial ports detected. You can configure manually.")
        self._echo("")
        self._echo("How many POS registers will this device handle?")
        self._echo("  1 = Single register")
        self._echo("  2 = Two registers (e.g., front + back counter)")
        self._echo("  3 = Three registers")
        self._echo(f"  {MAX_REGISTERS} = Four registers (maximum)")
        self._echo("")

    def _ask_count(self) -> int:
        while True:
            raw = self._ask("Number of POS registers [1]: ").strip() or "1"
            if raw in COUNT_CHOICES:
                return int(raw)
            self._echo(f"Please enter a number between 1 and {MAX_REGISTERS}")

    def _ask_register(self, index: int, previous: Sequence[RegisterConfig]) -> RegisterConfig:
        self._echo(f"─── POS Position {index} ───")
        port_default = default_serial_port(index, self._detected)
        serial_port = self._ask(f"  Serial port [{port_default}]: ").strip() or port_default
        if serial_port in {register.serial_port for register in previous}:
            logger.warning("Serial port %s is already bound to another register", serial_port)

        taken = {stream for register in previous for stream in stream_names(register.camera_name)}
        camera_default = default_camera_name(index)
        self._echo("  Camera name in Frigate (e.g., POS1, front_register, left_counter)")
        while True:
            camera_name = self._ask(f"  Camera name [{camera_default}]: ").strip() or camera_default
            if taken.isdisjoint(stream_names(camera_name)):
                break
            self._echo(
                f"  Camera name '{camera_name}' is already used by another camera"
                " or its '_sub' stream; choose another."
            )
        self._echo("")
        return RegisterConfig(index=index, serial_port=serial_port, camera_name=camera_name)

    def _confirm(self) -> bool:
        answer = self._ask("Is this correct? [Y/n]: ").strip()
        return not answer.lower().startswith("n")


def ask_wizard_answers(
    *,
    ask: Ask = input,
    echo: Echo = print,
    hostname: str | None = None,
) -> WizardAnswers:
    """Device name, webhook URLs, Frigate public URL and tunnel token."""

    default_name = hostname or socket.gethostname()
    device_name = ask(f"Device name [{default_name}]: ").strip() or default_name

    echo(section_header("Webhook Configuration"))
    echo("n8n Webhook URLs (leave blank to skip):")
    lines_url = ask("Lines webhook URL: ").strip()
    txns_url = ask("Transactions webhook URL: ").strip()

    echo("")
    frigate_url = ask("Frigate public URL (for video links in UI): ").strip()

    echo(section_header("Cloudflare Tunnel Setup"))
    echo("Get token from: https://one.dash.cloudflare.com/")
    echo("  → Zero Trust → Networks → Tunnels → Create tunnel")
    echo("")
    token = ask("Tunnel token (leave blank to skip): ").strip()
    if not token:
        logger.warning("No Cloudflare token provided - tunnel will not connect")

    return WizardAnswers(
        device_name=device_name,
        n8n_lines_url=lines_url,
        n8n_txns_url=txns_url,
        frigate_url=frigate_url,
        cloudflare_tunnel_token=token,
    )


__all__ = [
    "RegisterCollector",
    "ask_wizard_answers",
    "default_camera_name",
    "default_serial_port",
    "render_summary",
]
