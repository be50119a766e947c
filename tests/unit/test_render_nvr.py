import pytest
import yaml
from pydantic import ValidationError

from micromanager_installer.core.config import NvrSettings
from micromanager_installer.core.contracts import DeviceProfile
from micromanager_installer.render import render, render_nvr_config


def _profile(names: list[str]) -> DeviceProfile:
    return DeviceProfile.from_pairs([(f"/dev/ttyUSB{i}", name) for i, name in enumerate(names)])


def _nvr(profile: DeviceProfile) -> dict:
    docs = render(profile)
    assert docs.nvr_doc is not None
    return yaml.safe_load(docs.nvr_doc)


def test_each_register_gets_a_camera_and_two_streams() -> None:
    config = _nvr(_profile(["POS1", "POS2", "POS3"]))

    assert list(config["cameras"]) == ["POS1", "POS2", "POS3"]
    assert list(config["go2rtc"]["streams"]) == [
        "POS1", "POS1_sub", "POS2", "POS2_sub", "POS3", "POS3_sub",
    ]  # fmt: skip


def test_camera_addresses_follow_register_index() -> None:
    config = _nvr(_profile(["POS1", "POS2", "POS3"]))
    inputs = config["cameras"]["POS3"]["ffmpeg"]["inputs"]

    assert inputs[0] == {"path": "rtsp://10.7.7.103:554/media/live/1/1", "roles": ["record"]}
    assert inputs[1] == {"path": "rtsp://10.7.7.103:554/media/live/1/2", "roles": ["detect"]}
    assert config["go2rtc"]["streams"]["POS1_sub"] == ["rtsp://10.7.7.101:554/media/live/1/2"]


def test_camera_entry_defaults() -> None:
    camera = _nvr(_profile(["front"]))["cameras"]["front"]

    assert camera["enabled"] is True
    assert camera["live"]["streams"] == {"Main Stream": "front_sub", "High Stream": "front"}
    assert camera["detect"] == {"width": 704, "height": 480, "fps": 5}
    assert camera["motion"] == {"enabled": True}
    assert camera["ffmpeg"]["hwaccel_args"] == "preset-rpi-64-h264"


def test_global_sections() -> None:
    config = _nvr(_profile(["POS1"]))

    assert config["mqtt"] == {"enabled": False}
    assert config["tls"] == {"enabled": False}
    assert config["detectors"] == {"cpu1": {"type": "cpu", "num_threads": 2}}
    assert config["record"]["retain"] == {"days": 60, "mode": "motion"}
    assert config["version"] == "0.16-0"


def test_nvr_document_has_generated_header() -> None:
    doc = render_nvr_config(_profile(["POS1"]), NvrSettings())
    assert doc.startswith("# Frigate NVR Configuration\n")
    assert "\n\nmqtt:\n" in doc


@pytest.mark.parametrize("name", ["front: register", "#1 till", "yes", "123"])
def test_unusual_camera_names_stay_strings(name: str) -> None:
    config = _nvr(_profile([name]))
    assert list(config["cameras"]) == [name]
    assert config["cameras"][name]["live"]["streams"]["High Stream"] == name


def test_custom_subnet_and_threads() -> None:
    nvr = NvrSettings(camera_subnet="192.168.50", detector_threads=4)
    config = yaml.safe_load(render_nvr_config(_profile(["a", "b"]), nvr))

    assert config["cameras"]["b"]["ffmpeg"]["inputs"][0]["path"] == (
        "rtsp://192.168.50.102:554/media/live/1/1"
    )
    assert config["detectors"]["cpu1"]["num_threads"] == 4


@pytest.mark.parametrize("names", [["front", "front_sub"], ["front_sub", "front"], ["a", "b", "a"]])
def test_names_clashing_with_sub_streams_are_rejected(names: list[str]) -> None:
    with pytest.raises(ValidationError, match="clashing"):
        _profile(names)


def test_similar_names_keep_every_stream() -> None:
    config = _nvr(_profile(["front", "front_side"]))
    streams = config["go2rtc"]["streams"]

    assert len(streams) == 4
    assert streams["front_sub"] == ["rtsp://10.7.7.101:554/media/live/1/2"]
    assert streams["front_side"] == ["rtsp://10.7.7.102:554/media/live/1/1"]
