from micromanager_installer.core.contracts import DeviceProfile
from micromanager_installer.wizard import (
    RegisterCollector,
    ask_wizard_answers,
    default_camera_name,
    default_serial_port,
    render_summary,
)


def test_defaults_without_detected_ports(scripted_prompt) -> None:
    prompt = scripted_prompt(["2", "", "", "", "", ""])
    profile = RegisterCollector([], ask=prompt.ask, echo=prompt.echo).collect()

    assert [(r.serial_port, r.camera_name) for r in profile.registers] == [
        ("/dev/ttyUSB0", "POS1"),
        ("/dev/ttyUSB1", "POS2"),
    ]
    assert prompt.remaining == 0
    assert "No serial ports detected" in prompt.transcript


def test_detected_ports_become_defaults(scripted_prompt) -> None:
    prompt = scripted_prompt(["3", "", "", "", "front", "", "", "y"])
    profile = RegisterCollector(
        ["/dev/ttyACM0", "/dev/ttyUSB0"], ask=prompt.ask, echo=prompt.echo
    ).collect()

    assert profile.serial_ports == ["/dev/ttyACM0", "/dev/ttyUSB0", "/dev/ttyUSB2"]
    assert profile.camera_names == ["POS1", "front", "POS3"]


def test_count_prompt_retries_until_valid(scripted_prompt) -> None:
    prompt = scripted_prompt(["0", "5", "two", "\u00b2", "1 ", "/dev/ttyS0", "register_a", "Y"])
    profile = RegisterCollector([], ask=prompt.ask, echo=prompt.echo).collect()

    assert profile.count == 1
    assert profile.registers[0].serial_port == "/dev/ttyS0"
    assert profile.registers[0].camera_name == "register_a"
    assert prompt.output.count("Please enter a number between 1 and 4") == 4


def test_rejection_restarts_from_count_prompt(scripted_prompt) -> None:
    prompt = scripted_prompt(
        [
            "2", "/dev/ttyUSB7", "left", "/dev/ttyUSB8", "right", "n",
            "1", "", "", "",
        ]
    )  # fmt: skip
    profile = RegisterCollector([], ask=prompt.ask, echo=prompt.echo).collect()

    assert profile.count == 1
    assert profile.registers[0].serial_port == "/dev/ttyUSB0"
    assert profile.registers[0].camera_name == "POS1"
    assert prompt.prompts.count("Number of POS registers [1]: ") == 2


def test_repeated_rejection_does_not_recurse(scripted_prompt) -> None:
    answers: list[str] = []
    for _ in range(2000):
        answers += ["1", "", "", "no"]
    answers += ["1", "", "", ""]
    prompt = scripted_prompt(answers)

    profile = RegisterCollector([], ask=prompt.ask, echo=prompt.echo).collect()

    assert profile.count == 1
    assert prompt.remaining == 0


def test_duplicate_camera_name_is_reprompted(scripted_prompt) -> None:
    prompt = scripted_prompt(["2", "", "", "", "POS1", "back", ""])
    profile = RegisterCollector([], ask=prompt.ask, echo=prompt.echo).collect()

    assert profile.camera_names == ["POS1", "back"]
    assert any("already used" in line for line in prompt.output)


def test_name_clashing_with_sub_stream_is_reprompted(scripted_prompt) -> None:
    prompt = scripted_prompt(
        [
            "3", "", "front", "", "front_sub", "side", "", "side_sub", "front", "back", "",
        ]
    )  # fmt: skip
    profile = RegisterCollector([], ask=prompt.ask, echo=prompt.echo).collect()

    assert profile.camera_names == ["front", "side", "back"]
    assert sum("already used" in line for line in prompt.output) == 3


def test_default_helpers() -> None:
    assert default_serial_port(1, ["/dev/ttyACM0"]) == "/dev/ttyUSB1"
    assert default_serial_port(0, ["/dev/ttyACM0"]) == "/dev/ttyACM0"
    assert [default_camera_name(i) for i in range(4)] == ["POS1", "POS2", "POS3", "POS4"]


def test_summary_lists_every_register() -> None:
    profile = DeviceProfile.from_pairs([("/dev/ttyUSB0", "POS1"), ("/dev/ttyUSB1", "back")])
    table = render_summary(profile)
    rows = [line for line in table.splitlines() if "/dev/tty" in line]
    assert rows == [
        "│ 0        │ /dev/ttyUSB0    │ POS1               │",
        "│ 1        │ /dev/ttyUSB1    │ back               │",
    ]


def test_wizard_answers_default_device_name(scripted_prompt) -> None:
    prompt = scripted_prompt(["", "https://n8n.test/lines", "", "https://nvr.example.com", ""])
    answers = ask_wizard_answers(ask=prompt.ask, echo=prompt.echo, hostname="edge-01")

    assert answers.device_name == "edge-01"
    assert answers.n8n_lines_url == "https://n8n.test/lines"
    assert answers.n8n_txns_url == ""
    assert answers.frigate_url == "https://nvr.example.com"
    assert answers.cloudflare_tunnel_token == ""
