"""Tests for Govee multicast discovery."""

import json
import socket
import time

import pytest

from bridge_errors import NetworkError
from discovery.govee_discovery import GoveeDiscovery, build_descriptor, parse_reply


FULL_REPLY = {
    "msg": {
        "cmd": "scan",
        "data": {
            "ip": "192.168.1.50",
            "device": "AA:BB:CC:DD:EE:FF:11:22",
            "sku": "H6076",
            "deviceName": "Floor Lamp",
            "bleVersionHard": "3.01.01",
            "wifiVersionHard": "1.00.10",
        },
    }
}


def _datagram(payload, ip, port=4002):
    data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return (data, (ip, port))


def _fast_config(**overrides):
    config = {"discovery_timeout_ms": 300, "receive_poll_ms": 20}
    config.update(overrides)
    return config


class TestReplyParsing:
    def test_all_optional_fields_are_exposed(self):
        device = build_descriptor(FULL_REPLY, ("192.168.1.50", 4003))
        assert device.source_address == "192.168.1.50"
        assert device.source_port == 4003
        assert device.identifier == "AA:BB:CC:DD:EE:FF:11:22"
        assert device.model == "H6076"
        assert device.display_name == "Floor Lamp"
        assert device.details == {
            "ip": "192.168.1.50",
            "mac_address": "AA:BB:CC:DD:EE:FF:11:22",
            "device_id": "AA:BB:CC:DD:EE:FF:11:22",
            "model": "H6076",
            "name": "Floor Lamp",
            "ble_version": "3.01.01",
            "wifi_version": "1.00.10",
        }
        assert device.raw_payload == FULL_REPLY

    def test_missing_fields_are_not_errors(self):
        device = build_descriptor({"msg": {"cmd": "scan"}}, ("10.0.0.9", 4002))
        assert device.identifier is None
        assert device.model is None
        assert device.details == {}
        assert device.raw_payload == {"msg": {"cmd": "scan"}}

    def test_non_object_json_is_kept_raw(self):
        device = parse_reply(b"[1, 2, 3]", ("10.0.0.9", 4002))
        assert device.raw_payload == [1, 2, 3]
        assert device.model is None

    def test_malformed_reply_is_discarded(self):
        assert parse_reply(b"\xff{not json", ("10.0.0.9", 4002)) is None

    def test_to_dict_keeps_raw_payload(self):
        record = build_descriptor(FULL_REPLY, ("192.168.1.50", 4003)).to_dict()
        assert record["raw_payload"] == FULL_REPLY
        assert record["ble_version"] == "3.01.01"
        assert record["discovery_method"] == "govee_multicast"


class TestGoveeDiscovery:
    def test_collects_replies_in_arrival_order(self, fake_socket):
        second = {"msg": {"data": {"sku": "H6159", "device": "11:22"}}}
        sock, factory = fake_socket(replies=[
            _datagram(FULL_REPLY, "192.168.1.50"),
            _datagram(b"garbage", "192.168.1.77"),
            _datagram(second, "192.168.1.60"),
        ])
        devices = GoveeDiscovery(_fast_config(), socket_factory=factory).discover_blocking(0.3)

        assert [d.source_address for d in devices] == ["192.168.1.50", "192.168.1.60"]
        assert devices[1].model == "H6159"
        assert sock.closed

    def test_probe_and_socket_setup(self, fake_socket):
        sock, factory = fake_socket()
        GoveeDiscovery(_fast_config(), socket_factory=factory).discover_blocking(0.1)

        assert sock.bound == ("0.0.0.0", 4002)
        assert any(opt[1] == socket.IP_ADD_MEMBERSHIP for opt in sock.options)
        data, address = sock.sent[0]
        assert address == ("239.255.255.250", 4001)
        assert json.loads(data) == {"msg": {"cmd": "scan", "data": {"account_topic": "reserve"}}}

    def test_repeated_replies_from_same_address_kept_once(self, fake_socket):
        retransmit = {"msg": {"data": {"sku": "CHANGED"}}}
        _, factory = fake_socket(replies=[
            _datagram(FULL_REPLY, "192.168.1.50"),
            _datagram(retransmit, "192.168.1.50"),
        ])
        devices = GoveeDiscovery(_fast_config(), socket_factory=factory).discover_blocking(0.2)
        assert len(devices) == 1
        assert devices[0].model == "H6076"

    def test_no_replies_returns_empty_within_timeout(self, fake_socket):
        _, factory = fake_socket()
        started = time.monotonic()
        devices = GoveeDiscovery(_fast_config(), socket_factory=factory).discover_blocking(0.25)
        assert devices == []
        assert time.monotonic() - started < 1.0

    def test_receive_error_ends_collection(self, fake_socket):
        _, factory = fake_socket(replies=[
            _datagram(FULL_REPLY, "192.168.1.50"),
            ConnectionResetError("reset"),
        ])
        devices = GoveeDiscovery(_fast_config(), socket_factory=factory).discover_blocking(5)
        assert len(devices) == 1

    def test_bind_failure_raises(self, fake_socket):
        sock, factory = fake_socket(bind_error=OSError(98, "Address already in use"))
        with pytest.raises(NetworkError, match="Failed to bind to UDP 4002"):
            GoveeDiscovery(_fast_config(), socket_factory=factory).discover_blocking(0.1)
        assert sock.closed

    def test_send_failure_raises(self, fake_socket):
        sock, factory = fake_socket(send_error=OSError("Network is unreachable"))
        with pytest.raises(NetworkError, match="Failed to send discovery probe"):
            GoveeDiscovery(_fast_config(), socket_factory=factory).discover_blocking(0.1)
        assert sock.closed

    def test_reserved_port_in_use_raises(self):
        holder = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        holder.bind(("0.0.0.0", 0))
        try:
            port = holder.getsockname()[1]
            discovery = GoveeDiscovery(_fast_config(listen_port=port))
            with pytest.raises(NetworkError):
                discovery.discover_blocking(0.1)
        finally:
            holder.close()

    @pytest.mark.asyncio
    async def test_discover_runs_off_loop(self, fake_socket):
        _, factory = fake_socket(replies=[_datagram(FULL_REPLY, "192.168.1.50")])
        devices = await GoveeDiscovery(_fast_config(), socket_factory=factory).discover(200)
        assert len(devices) == 1
        assert devices[0].display_name == "Floor Lamp"
