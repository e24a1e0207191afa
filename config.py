"""
Configuration module for topology discovery.

This module handles the device inventory: SSH connection settings plus the
per-host identity extras (router-id, mgmt IP, protocol preference) used to
match discovered neighbors back to configured hosts.
"""

import logging
import os

import yaml

from constants import DEFAULT_SSH_PORT, NEIGHBOR_PREF_AUTO, TRANSPORT_OPENSSH
from hostmatch import normalize_host_full

log = logging.getLogger(__name__)

_DEVICE_FIELDS = (
    "host", "username", "password", "port", "ssh_config_file", "identity_file",
    "jump_host", "device_os", "transport", "router_id", "mgmt_ip", "neighbor_pref",
)


class ConfigurationError(ValueError):
    """Inventory is missing or malformed; no meaningful result is possible."""


class DeviceConfig:
    """Configuration for a single network device."""

    def __init__(self, host="", username=None, password=None, port=DEFAULT_SSH_PORT,
                 ssh_config_file=None, identity_file=None, jump_host=None, device_os="",
                 transport=TRANSPORT_OPENSSH, router_id="", mgmt_ip="",
                 neighbor_pref=NEIGHBOR_PREF_AUTO):

        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.ssh_config_file = ssh_config_file
        self.identity_file = identity_file
        self.jump_host = jump_host
        self.device_os = (device_os or "").strip().lower()
        self.transport = (transport or TRANSPORT_OPENSSH).strip().lower()
        self.router_id = router_id or ""
        self.mgmt_ip = mgmt_ip or ""
        self.neighbor_pref = (neighbor_pref or NEIGHBOR_PREF_AUTO).strip().lower()


    @property
    def key(self):
        """Normalized host key used for identity and lookups."""

        return normalize_host_full(self.host)


    def to_dict(self):
        """Convert to dictionary format."""

        return {name: getattr(self, name) for name in _DEVICE_FIELDS}


    def __repr__(self):

        return f"DeviceConfig(host={self.host!r}, device_os={self.device_os!r})"


class Inventory:
    """Statically configured hosts, indexed by normalized host key."""

    def __init__(self, devices=None):
        """
        Initialize inventory.

        Args:
            devices: List of DeviceConfig objects.

        Raises:
            ConfigurationError: On empty or duplicate host keys.
        """

        self.devices = list(devices or [])
        self._by_key = {}

        duplicates = []
        for device in self.devices:
            key = device.key
            if not key:
                raise ConfigurationError(f"Device with empty host in inventory: {device!r}")
            if key in self._by_key:
                duplicates.append(key)
                continue
            self._by_key[key] = device

        if duplicates:
            unique_duplicates = sorted(set(duplicates))
            raise ConfigurationError(f"Duplicate device hosts found: {', '.join(unique_duplicates)}")


    def __iter__(self):

        return iter(self.devices)


    def __len__(self):

        return len(self.devices)


    def get(self, host):
        """Return the DeviceConfig for a host key, or None."""

        return self._by_key.get(normalize_host_full(host))


    def network_devices(self):
        """Return devices that declare a device OS (candidates for discovery)."""

        return [d for d in self.devices if d.device_os]


def _expand_path(value):

    if not value:
        return value
    return os.path.expandvars(os.path.expanduser(value))


def device_from_dict(data, defaults=None):
    """
    Build a DeviceConfig from an inventory mapping.

    Args:
        data: Host mapping from the inventory file.
        defaults: Mapping applied to every host unless overridden.

    Returns:
        DeviceConfig.
    """

    if not isinstance(data, dict):
        raise ConfigurationError(f"Inventory host entry must be a mapping, got {type(data).__name__}")

    merged = dict(defaults or {})
    merged.update(data)

    unknown = sorted(set(merged) - set(_DEVICE_FIELDS))
    if unknown:
        raise ConfigurationError(f"Unknown inventory field(s) for {merged.get('host')!r}: {', '.join(unknown)}")
    if not merged.get("host"):
        raise ConfigurationError("Inventory host entry is missing 'host'")

    try:
        merged["port"] = int(merged.get("port") or DEFAULT_SSH_PORT)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid port for {merged['host']!r}: {merged.get('port')!r}") from e

    for name in ("ssh_config_file", "identity_file"):
        merged[name] = _expand_path(merged.get(name))

    for name in ("router_id", "mgmt_ip", "host"):
        value = merged.get(name)
        if isinstance(value, (list, tuple, dict)):
            raise ConfigurationError(f"{name} for {merged['host']!r} must be a single value, got {value!r}")
        if value is not None:
            merged[name] = str(value)

    return DeviceConfig(**merged)


def load_inventory(path):
    """
    Load the device inventory from a YAML file.

    Expected layout:

        defaults:
          username: admin
        hosts:
          - host: leaf01
            device_os: cisco_iosxe
            router_id: 10.0.0.1

    Args:
        path: Inventory file path.

    Returns:
        Inventory.

    Raises:
        ConfigurationError: File missing, unreadable, or malformed.
    """

    path = _expand_path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"Inventory file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid inventory YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Inventory {path} must be a mapping with a 'hosts' list")

    defaults = data.get("defaults") or {}
    hosts = data.get("hosts") or []
    if not isinstance(hosts, list):
        raise ConfigurationError(f"Inventory {path}: 'hosts' must be a list")

    inventory = Inventory([device_from_dict(h, defaults) for h in hosts])
    log.info(f"Loaded {len(inventory)} host(s) from {path}")
    return inventory
