import asyncio
import time

import pytest

from yeelight_lan import commands
from yeelight_lan.config import Config
from yeelight_lan.sender import MAX_REPLY_BYTES, DeviceSender, DeviceTarget, TransportError

OK_REPLY = b'{"id":1,"result":["ok"]}\r\n'


def _target(port: int, device_id: str = "stub") -> DeviceTarget:
    return DeviceTarget(id=device_id, ip="127.0.0.1", port=port)


def test_send_writes_frame_and_returns_reply(device_stub) -> None:
    stub = device_stub(reply=OK_REPLY)
    reply = DeviceSender().send(_target(stub.port), commands.set_brightness(50))
    assert reply == '{"id":1,"result":["ok"]}'
    stub.close()
    assert stub.received == b'{"id":1,"method":"set_bright","params":[50,"smooth",500]}\r\n'


def test_silent_device_returns_none_after_read_timeout(device_stub) -> None:
    stub = device_stub(reply=None)
    started = time.monotonic()
    reply = DeviceSender().send(_target(stub.port), commands.toggle())
    elapsed = time.monotonic() - started
    assert reply is None
    assert 0.8 <= elapsed < 3.0


def test_read_timeout_is_configurable(device_stub) -> None:
    stub = device_stub(reply=None)
    sender = DeviceSender(Config(device_read_timeout=0.2))
    started = time.monotonic()
    assert sender.send(_target(stub.port), commands.toggle()) is None
    assert time.monotonic() - started < 0.9


def test_peer_closing_without_reply_is_not_an_error(device_stub) -> None:
    stub = device_stub(close_without_reply=True)
    assert DeviceSender().send(_target(stub.port), commands.stop_color_flow()) is None


def test_fire_and_forget_skips_read(device_stub) -> None:
    stub = device_stub(reply=None)
    started = time.monotonic()
    assert DeviceSender().send(_target(stub.port), commands.toggle(), read_reply=False) is None
    assert time.monotonic() - started < 0.5
    stub.close()
    assert stub.received.endswith(b"\r\n")


def test_unreachable_port_raises_transport_error(closed_port: int) -> None:
    with pytest.raises(TransportError) as excinfo:
        DeviceSender().send(_target(closed_port, "offline"), commands.toggle())
    assert excinfo.value.device_id == "offline"
    assert excinfo.value.port == closed_port
    assert isinstance(excinfo.value, OSError)


def test_send_accepts_device_records(device_stub) -> None:
    from yeelight_lan.devices import YeelightDevice

    stub = device_stub(reply=OK_REPLY)
    device = YeelightDevice(
        id="bulb",
        ip="127.0.0.1",
        port=stub.port,
        model="mono",
        fw_ver=1,
        support=(),
        power=True,
        bright=10,
        color_mode=2,
        ct=2700,
        rgb=0,
        hue=0,
        sat=0,
        name="",
    )
    assert DeviceSender().send(device, commands.toggle()) == '{"id":1,"result":["ok"]}'


@pytest.mark.asyncio
async def test_concurrent_sends_do_not_block_each_other(device_stub) -> None:
    silent = device_stub(reply=None)
    fast = device_stub(reply=OK_REPLY)
    sender = DeviceSender()
    loop = asyncio.get_running_loop()

    async def _timed(target: DeviceTarget):
        started = loop.time()
        reply = await sender.send_async(target, commands.toggle())
        return reply, loop.time() - started

    (silent_reply, silent_elapsed), (fast_reply, fast_elapsed) = await asyncio.gather(
        _timed(_target(silent.port, "silent")), _timed(_target(fast.port, "fast"))
    )
    assert silent_reply is None
    assert silent_elapsed >= 0.8
    assert fast_reply == '{"id":1,"result":["ok"]}'
    assert fast_elapsed < 0.5


@pytest.mark.asyncio
async def test_broadcast_reports_each_device(device_stub, closed_port: int) -> None:
    replying = device_stub(reply=OK_REPLY)
    silent = device_stub(reply=None)
    sender = DeviceSender(Config(device_read_timeout=0.3))
    results = await sender.broadcast(
        [
            _target(replying.port, "replying"),
            _target(silent.port, "silent"),
            _target(closed_port, "offline"),
        ],
        commands.set_power(True),
    )
    assert [target.id for target, _ in results] == ["replying", "silent", "offline"]
    assert results[0][1] == '{"id":1,"result":["ok"]}'
    assert results[1][1] is None
    assert isinstance(results[2][1], TransportError)
    replying.close()
    silent.close()
    assert replying.received == silent.received


@pytest.mark.asyncio
async def test_broadcast_keeps_devices_sharing_an_id(device_stub, closed_port: int) -> None:
    replying = device_stub(reply=OK_REPLY)
    sender = DeviceSender(Config(device_read_timeout=0.3))
    first = _target(replying.port, "dup")
    second = _target(closed_port, "dup")
    results = await sender.broadcast([first, second], commands.toggle())
    assert len(results) == 2
    assert results[0] == (first, '{"id":1,"result":["ok"]}')
    assert results[1][0] == second
    assert isinstance(results[1][1], TransportError)


def test_trickling_reply_is_bounded_by_read_timeout(device_stub) -> None:
    stub = device_stub(trickle_interval=0.3)
    started = time.monotonic()
    reply = DeviceSender().send(_target(stub.port), commands.toggle())
    elapsed = time.monotonic() - started
    assert reply is None
    assert elapsed < 2.0


def test_oversized_reply_raises_transport_error(device_stub) -> None:
    stub = device_stub(reply=b"x" * (MAX_REPLY_BYTES + 4096))
    with pytest.raises(TransportError) as excinfo:
        DeviceSender().send(_target(stub.port, "chatty"), commands.toggle())
    assert excinfo.value.device_id == "chatty"
    assert "exceeds" in str(excinfo.value)


def test_only_first_reply_line_is_returned(device_stub) -> None:
    stub = device_stub(reply=b'{"id":1,"result":["ok"]}\r\n{"method":"props"}\r\n')
    assert DeviceSender().send(_target(stub.port), commands.toggle()) == '{"id":1,"result":["ok"]}'
