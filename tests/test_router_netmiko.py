"""Tests for the netmiko interactive transport."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from config import DeviceConfig
from router_base import get_router
from router_netmiko import Router_Netmiko


@pytest.fixture
def device():
    return DeviceConfig(
        host="leaf01", username="admin", password="secret", device_os="cisco_iosxe",
        transport="netmiko",
    )


def test_get_router_picks_netmiko(device):
    assert isinstance(get_router(device), Router_Netmiko)


def test_connection_params(device):
    params = Router_Netmiko(device, connect_timeout=7).connection_params()

    assert params["device_type"] == "cisco_xe"
    assert params["host"] == "leaf01"
    assert params["username"] == "admin"
    assert params["password"] == "secret"
    assert params["port"] == 22
    assert params["conn_timeout"] == 7
    assert "key_file" not in params


def test_connection_params_with_keys():
    device = DeviceConfig(host="sonic01", device_os="sonic_dell", identity_file="/keys/lab",
                          ssh_config_file="/etc/ssh/lab_config")
    params = Router_Netmiko(device).connection_params()

    assert params["device_type"] == "linux"
    assert params["use_keys"] is True
    assert params["key_file"] == "/keys/lab"
    assert params["ssh_config_file"] == "/etc/ssh/lab_config"


@patch("router_netmiko.ConnectHandler")
def test_run_command_success(mock_handler, device):
    conn = mock_handler.return_value
    conn.send_command.return_value = "Device ID  Local Intf"

    router = Router_Netmiko(device)
    out = router.run_command("show lldp neighbors", timeout=8)

    assert out.ok
    assert out.stdout == "Device ID  Local Intf"
    conn.send_command.assert_called_once_with("show lldp neighbors", read_timeout=8)

    # Session is reused for the next command
    router.run_command("show cdp neighbors")
    assert mock_handler.call_count == 1


@patch("router_netmiko.ConnectHandler", side_effect=Exception("Authentication failed."))
def test_connect_failure(mock_handler, device):
    out = Router_Netmiko(device).run_command("show lldp neighbors")

    assert not out.ok
    assert out.error == "connect failed: Authentication failed."


@patch("router_netmiko.ConnectHandler")
def test_command_error_drops_session(mock_handler, device):
    conn = mock_handler.return_value
    conn.send_command.side_effect = Exception("Pattern not detected: timed out")

    router = Router_Netmiko(device)
    out = router.run_command("show lldp neighbors")

    assert not out.ok
    assert out.timed_out
    conn.disconnect.assert_called_once()
    assert router.router_connect is None


@patch("router_netmiko.ConnectHandler")
def test_cancel_during_command(mock_handler, device):
    cancel_event = threading.Event()
    conn = mock_handler.return_value

    def send_command(cmd, read_timeout=None):
        cancel_event.set()
        raise OSError("Socket is closed")

    conn.send_command.side_effect = send_command

    out = Router_Netmiko(device, poll_interval=0.01).run_command(
        "show lldp neighbors", cancel_event=cancel_event)

    assert out.cancelled
    assert out.error == "cancelled"


@patch("router_netmiko.ConnectHandler")
def test_already_cancelled_never_connects(mock_handler, device):
    cancel_event = threading.Event()
    cancel_event.set()

    out = Router_Netmiko(device).run_command("show lldp neighbors", cancel_event=cancel_event)

    assert out.cancelled
    mock_handler.assert_not_called()


@patch("router_netmiko.ConnectHandler")
def test_disconnect_is_idempotent(mock_handler, device):
    router = Router_Netmiko(device)
    router.run_command("show lldp neighbors")

    router.disconnect()
    router.disconnect()

    mock_handler.return_value.disconnect.assert_called_once()


@patch("router_netmiko.ConnectHandler")
def test_cancel_during_connect(mock_handler, device):
    cancel_event = threading.Event()
    conn = MagicMock()

    def connect(**params):
        cancel_event.set()
        return conn

    mock_handler.side_effect = connect

    router = Router_Netmiko(device)
    out = router.run_command("show lldp neighbors", cancel_event=cancel_event)

    assert out.cancelled
    assert out.error == "cancelled"
    conn.send_command.assert_not_called()
    conn.disconnect.assert_called_once()
    assert router.router_connect is None


@patch("router_netmiko.ConnectHandler")
def test_connect_error_after_cancel_is_cancelled(mock_handler, device):
    cancel_event = threading.Event()

    def connect(**params):
        cancel_event.set()
        raise OSError("Socket is closed")

    mock_handler.side_effect = connect

    out = Router_Netmiko(device).run_command("show lldp neighbors", cancel_event=cancel_event)

    assert out.cancelled
    assert out.error == "cancelled"
