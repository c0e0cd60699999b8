import pytest

from yeelight_lan.discovery import DiscoveryParseError, parse_discovery_response

RESPONSE = "\r\n".join(
    [
        "HTTP/1.1 200 OK",
        "Cache-Control: max-age=3600",
        "Location: yeelight://192.168.1.239:55443",
        "Server: POSIX UPnP/1.0 YGLC/1",
        "id: 0x000000000015243f",
        "model: color",
        "fw_ver: 18",
        "support: get_prop set_default set_power toggle set_bright start_cf stop_cf",
        "power: on",
        "bright: 100",
        "color_mode: 2",
        "ct: 4000",
        "rgb: 16711680",
        "hue: 100",
        "sat: 35",
        "name: my_bulb",
        "",
    ]
)


def _without(key: str) -> str:
    return "\r\n".join(line for line in RESPONSE.split("\r\n") if not line.startswith(f"{key}:"))


def test_parse_full_response() -> None:
    device = parse_discovery_response(RESPONSE)
    assert device.id == "0x000000000015243f"
    assert device.ip == "192.168.1.239"
    assert device.port == 55443
    assert device.model == "color"
    assert device.fw_ver == 18
    assert device.support[:3] == ("get_prop", "set_default", "set_power")
    assert device.supports("start_cf")
    assert not device.supports("set_music")
    assert device.power is True
    assert device.bright == 100
    assert device.color_mode == 2
    assert device.ct == 4000
    assert device.rgb == 0xFF0000
    assert device.hue == 100
    assert device.sat == 35
    assert device.name == "my_bulb"


def test_parse_accepts_bytes() -> None:
    assert parse_discovery_response(RESPONSE.encode("utf-8")).id == "0x000000000015243f"


def test_missing_id_is_a_parse_error() -> None:
    with pytest.raises(DiscoveryParseError) as excinfo:
        parse_discovery_response(_without("id"))
    assert excinfo.value.key == "id"


@pytest.mark.parametrize("key", ["model", "fw_ver", "power", "bright", "name", "Location"])
def test_other_required_keys(key: str) -> None:
    with pytest.raises(DiscoveryParseError, match=key):
        parse_discovery_response(_without(key))


def test_missing_support_yields_empty_list() -> None:
    device = parse_discovery_response(_without("support"))
    assert device.support == ()


def test_power_is_true_only_for_on() -> None:
    assert parse_discovery_response(RESPONSE.replace("power: on", "power: off")).power is False
    assert parse_discovery_response(RESPONSE.replace("power: on", "power: ON")).power is False


def test_empty_name_is_allowed() -> None:
    device = parse_discovery_response(RESPONSE.replace("name: my_bulb", "name: "))
    assert device.name == ""


def test_malformed_values_are_parse_errors() -> None:
    with pytest.raises(DiscoveryParseError, match="fw_ver"):
        parse_discovery_response(RESPONSE.replace("fw_ver: 18", "fw_ver: beta"))
    with pytest.raises(DiscoveryParseError, match="Location"):
        parse_discovery_response(
            RESPONSE.replace("yeelight://192.168.1.239:55443", "192.168.1.239")
        )
    with pytest.raises(DiscoveryParseError, match="Location"):
        parse_discovery_response(
            RESPONSE.replace("yeelight://192.168.1.239:55443", "yeelight://192.168.1.239:x")
        )


def test_parse_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        parse_discovery_response("garbage without separators")
