"""Tests for the YAML device inventory."""

import textwrap

import pytest

from config import (
    ConfigurationError,
    DeviceConfig,
    Inventory,
    device_from_dict,
    load_inventory,
)
from constants import DEFAULT_SSH_PORT, NEIGHBOR_PREF_AUTO, TRANSPORT_NETMIKO, TRANSPORT_OPENSSH


def write_inventory(tmp_path, body):
    path = tmp_path / "inventory.yaml"
    path.write_text(textwrap.dedent(body))
    return str(path)


class TestLoadInventory:
    def test_loads_hosts_with_defaults(self, tmp_path):
        path = write_inventory(tmp_path, """\
            defaults:
              username: admin
              device_os: cisco_iosxe
            hosts:
              - host: leaf01.lab.local
                router_id: 10.0.0.11
                mgmt_ip: 192.0.2.11
              - host: sonic01
                device_os: sonic_dell
                transport: netmiko
                port: "2222"
                neighbor_pref: LLDP
              - host: jumpbox
                device_os: ""
            """)

        inventory = load_inventory(path)

        assert len(inventory) == 3
        leaf = inventory.get("LEAF01.lab.local.")
        assert leaf.username == "admin"
        assert leaf.device_os == "cisco_iosxe"
        assert leaf.router_id == "10.0.0.11"
        assert leaf.mgmt_ip == "192.0.2.11"
        assert leaf.port == DEFAULT_SSH_PORT
        assert leaf.transport == TRANSPORT_OPENSSH
        assert leaf.neighbor_pref == NEIGHBOR_PREF_AUTO

        sonic = inventory.get("sonic01")
        assert sonic.device_os == "sonic_dell"
        assert sonic.transport == TRANSPORT_NETMIKO
        assert sonic.port == 2222
        assert sonic.neighbor_pref == "lldp"

        assert [d.host for d in inventory.network_devices()] == ["leaf01.lab.local", "sonic01"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_inventory(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = write_inventory(tmp_path, "hosts: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid inventory YAML"):
            load_inventory(path)

    def test_hosts_must_be_list(self, tmp_path):
        path = write_inventory(tmp_path, "hosts:\n  leaf01: {}\n")
        with pytest.raises(ConfigurationError, match="must be a list"):
            load_inventory(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = write_inventory(tmp_path, "- host: leaf01\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_inventory(path)

    def test_empty_file_is_empty_inventory(self, tmp_path):
        path = write_inventory(tmp_path, "")
        assert len(load_inventory(path)) == 0

    def test_duplicate_hosts(self, tmp_path):
        path = write_inventory(tmp_path, """\
            hosts:
              - host: Leaf01
              - host: leaf01.
            """)
        with pytest.raises(ConfigurationError, match="Duplicate device hosts found: leaf01"):
            load_inventory(path)


class TestDeviceFromDict:
    def test_unknown_field(self):
        with pytest.raises(ConfigurationError, match="Unknown inventory field"):
            device_from_dict({"host": "leaf01", "colour": "blue"})

    def test_missing_host(self):
        with pytest.raises(ConfigurationError, match="missing 'host'"):
            device_from_dict({"username": "admin"})

    def test_bad_port(self):
        with pytest.raises(ConfigurationError, match="Invalid port"):
            device_from_dict({"host": "leaf01", "port": "ssh"})

    def test_mgmt_ip_list_rejected(self, tmp_path):
        path = write_inventory(tmp_path, """\
            hosts:
              - host: core01
                mgmt_ip: [10.0.0.2, 10.0.0.3]
            """)
        with pytest.raises(ConfigurationError, match="mgmt_ip for 'core01' must be a single value"):
            load_inventory(path)

    def test_scalar_identity_fields_become_strings(self):
        device = device_from_dict({"host": "core01", "router_id": "10.0.0.9", "mgmt_ip": "192.0.2.1"})
        assert (device.router_id, device.mgmt_ip) == ("10.0.0.9", "192.0.2.1")

    def test_host_overrides_defaults(self):
        device = device_from_dict({"host": "leaf01", "username": "ops"}, {"username": "admin"})
        assert device.username == "ops"

    def test_expands_user_paths(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/netops")
        device = device_from_dict({"host": "leaf01", "identity_file": "~/.ssh/id_ed25519"})
        assert device.identity_file == "/home/netops/.ssh/id_ed25519"


class TestInventory:
    def test_empty_host_rejected(self):
        with pytest.raises(ConfigurationError, match="empty host"):
            Inventory([DeviceConfig(host="  ")])

    def test_get_unknown(self):
        inventory = Inventory([DeviceConfig(host="leaf01")])
        assert inventory.get("leaf02") is None

    def test_to_dict_round_trips_fields(self):
        device = DeviceConfig(host="leaf01", device_os="Cisco_IOSXE", router_id="10.0.0.1")
        data = device.to_dict()
        assert data["host"] == "leaf01"
        assert data["device_os"] == "cisco_iosxe"
        assert DeviceConfig(**data).key == "leaf01"
