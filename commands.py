"""Neighbor discovery command selection per device OS."""

from dataclasses import dataclass

from constants import (
    NETWORK_OS_CISCO_IOSXE,
    NETWORK_OS_SONIC_DELL,
    NEIGHBOR_PREF_AUTO,
    PARSER_CISCO_CDP,
    PARSER_CISCO_LLDP,
    PARSER_CISCO_LLDP_DETAIL,
    PARSER_SONIC_LLDP,
    PROTOCOL_CDP,
    PROTOCOL_LLDP,
)


@dataclass(frozen=True)
class CommandSpec:
    """How to retrieve neighbors from one device OS with one command."""

    name: str
    command: str
    parser_id: str
    timeout: float = 0.0
    os: str = ""
    protocol: str = PROTOCOL_LLDP


# Most capable first. Cisco LLDP detail carries management addresses, which
# makes it the best source for identity matching.
_COMMAND_CATALOG = {
    NETWORK_OS_CISCO_IOSXE: (
        CommandSpec(
            name="show lldp neighbors detail",
            command="show lldp neighbors detail",
            parser_id=PARSER_CISCO_LLDP_DETAIL,
            timeout=12.0,
            os=NETWORK_OS_CISCO_IOSXE,
            protocol=PROTOCOL_LLDP,
        ),
        CommandSpec(
            name="show lldp neighbors",
            command="show lldp neighbors",
            parser_id=PARSER_CISCO_LLDP,
            timeout=8.0,
            os=NETWORK_OS_CISCO_IOSXE,
            protocol=PROTOCOL_LLDP,
        ),
        CommandSpec(
            name="show cdp neighbors",
            command="show cdp neighbors",
            parser_id=PARSER_CISCO_CDP,
            timeout=8.0,
            os=NETWORK_OS_CISCO_IOSXE,
            protocol=PROTOCOL_CDP,
        ),
    ),
    NETWORK_OS_SONIC_DELL: (
        CommandSpec(
            name="show lldp neighbors",
            command="show lldp neighbors",
            parser_id=PARSER_SONIC_LLDP,
            timeout=10.0,
            os=NETWORK_OS_SONIC_DELL,
            protocol=PROTOCOL_LLDP,
        ),
    ),
}


def supported_device_os():
    """Return the device OS identifiers that have a command chain."""

    return sorted(_COMMAND_CATALOG)


def default_neighbor_commands(device_os):
    """
    Return the canonical fallback chain for a device OS.

    Args:
        device_os: Device OS identifier (e.g. cisco_iosxe, sonic_dell).

    Returns:
        List of CommandSpec in priority order, empty if the OS is unknown.
    """

    device_os = (device_os or "").strip().lower()
    return list(_COMMAND_CATALOG.get(device_os, ()))


def neighbor_commands_for_host(device_os, pref=NEIGHBOR_PREF_AUTO):
    """
    Return the command specs to try for a host, honoring its protocol preference.

    "auto" (or empty/unrecognized) returns the full chain. A forced protocol
    ("lldp" or "cdp") keeps only that protocol's specs and never falls back
    to the other one; if nothing remains the result is empty.

    Args:
        device_os: Device OS identifier.
        pref: Neighbor discovery preference.

    Returns:
        List of CommandSpec, possibly empty. An empty list means discovery is
        impossible for this host, not that it has zero neighbors.
    """

    specs = default_neighbor_commands(device_os)
    pref = (pref or NEIGHBOR_PREF_AUTO).strip().lower()

    if pref not in (PROTOCOL_LLDP, PROTOCOL_CDP):
        return specs

    return [spec for spec in specs if spec.protocol == pref]
