"""
Neighbor output parsers.

Raw LLDP/CDP command output is run through TextFSM templates and normalized
into NeighborEntry records. Parsers are tolerant of messy CLI output but
raise ParseError when the text does not look like the expected command at
all, so the collector can fall back to the next command.
"""

import logging
from pathlib import Path

import textfsm

from constants import (
    PARSER_CISCO_CDP,
    PARSER_CISCO_LLDP,
    PARSER_CISCO_LLDP_DETAIL,
    PARSER_SONIC_LLDP,
    TEXTFSM_DIR,
    TEXTFSM_TEMPLATES,
)
from hostmatch import extract_ips_from_text, parse_ip

log = logging.getLogger(__name__)

_TEMPLATE_ROOT = Path(__file__).resolve().parent / TEXTFSM_DIR

_CAPABILITY_CODES = {
    "R": "ROUTER",
    "B": "BRIDGE",
    "T": "TELEPHONE",
    "W": "WLAN_AP",
    "P": "REPEATER",
    "S": "STATION",
    "O": "OTHER",
}


class ParseError(ValueError):
    """Command output could not be parsed with the requested parser."""


class NeighborEntry:
    """One directional adjacency: local_device sees remote_device via local_port -> remote_port."""

    def __init__(self, local_device="", local_port="", remote_device="", remote_port="",
                 capabilities=None, mgmt_ips=None, raw=""):

        self.local_device = local_device
        self.local_port = local_port
        self.remote_device = remote_device
        self.remote_port = remote_port
        self.capabilities = capabilities or []
        self.mgmt_ips = mgmt_ips or []
        self.raw = raw


    def __repr__(self):

        return (f"NeighborEntry({self.local_device}:{self.local_port} -> "
                f"{self.remote_device}:{self.remote_port})")


class ParseResult:
    """Output of parsing one command on one device. Zero entries is a valid result."""

    def __init__(self, local_device="", entries=None, identity_hint_ips=None, warnings=None):

        self.local_device = local_device
        self.entries = entries or []
        self.identity_hint_ips = identity_hint_ips or []
        self.warnings = warnings or []


def normalize_capability(token):
    """Map single-letter capability codes to stable labels; upper-case anything else."""

    token = (token or "").strip().upper()
    return _CAPABILITY_CODES.get(token, token)


def _uniq(values):

    seen = set()
    out = []
    for v in values:
        v = (v or "").strip()
        if not v or v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def parse_with_template(template_name, output):
    """
    Parse output using a TextFSM template.

    Args:
        template_name: File name under the TextFSM template directory.
        output: Raw command output.

    Returns:
        List of dicts keyed by the template's value names.

    Raises:
        ParseError: If the template is missing or TextFSM rejects the input.
    """

    template_file = _TEMPLATE_ROOT / template_name
    if not template_file.exists():
        raise ParseError(f"Template file not found: {template_file}")

    try:
        with open(template_file) as f:
            re_table = textfsm.TextFSM(f)
            rows = re_table.ParseText(output)
    except (textfsm.TextFSMError, textfsm.TextFSMTemplateError) as e:
        raise ParseError(f"TextFSM Error: {e}") from e

    return [dict(zip(re_table.header, row)) for row in rows]


def _split_capabilities(raw):

    if isinstance(raw, list):
        tokens = raw
    else:
        tokens = (raw or "").replace(" ", ",").split(",")
    return _uniq(normalize_capability(t) for t in tokens)


def _build_entries(local_device, rows, warnings):
    """Convert normalized template rows into NeighborEntry objects."""

    entries = []
    for row in rows:
        mgmt_ips = []
        for token in row.get("MGMT_ADDRESS") or []:
            ip = parse_ip(token)
            if ip:
                mgmt_ips.append(ip)
            else:
                warnings.append(f"invalid mgmt ip token: {token}")

        entries.append(NeighborEntry(
            local_device=local_device,
            local_port=(row.get("LOCAL_INTERFACE") or "").strip(),
            remote_device=(row.get("NEIGHBOR") or "").strip(),
            remote_port=(row.get("NEIGHBOR_INTERFACE") or "").strip(),
            capabilities=_split_capabilities(row.get("CAPABILITIES")),
            mgmt_ips=_uniq(mgmt_ips),
            raw=" ".join(f"{k}={v}" for k, v in sorted(row.items()) if v),
        ))
    return entries


def _looks_like_cisco_table(output):

    return "Device ID" in output


def _looks_like_cisco_detail(output):

    return "Local Intf:" in output


def _looks_like_sonic(output):
    """SONiC output that announces neighbors but yielded none is broken, not quiet."""

    lowered = output.lower()
    return not ("lldp neighbors" in lowered and "Interface:" in output)


# parser id -> (expected-shape check, error when the shape is wrong)
_PARSERS = {
    PARSER_CISCO_LLDP: (_looks_like_cisco_table, "cisco iosxe lldp: missing expected header"),
    PARSER_CISCO_LLDP_DETAIL: (_looks_like_cisco_detail, "cisco iosxe lldp detail: missing expected Local Intf blocks"),
    PARSER_CISCO_CDP: (_looks_like_cisco_table, "cisco iosxe cdp: missing expected header"),
    PARSER_SONIC_LLDP: (_looks_like_sonic, "sonic lldp: no neighbor entries parsed"),
}


def supported_parsers():
    """Return the parser IDs known to parse_neighbor_output."""

    return sorted(_PARSERS)


def parse_neighbor_output(parser_id, local_device, output):
    """
    Route raw command output to the parser identified by parser_id.

    Args:
        parser_id: One of the PARSER_* constants.
        local_device: Host key of the device the output came from.
        output: Raw stdout of the discovery command.

    Returns:
        ParseResult (entries may be empty).

    Raises:
        ParseError: Unknown parser ID or output that does not match the command.
    """

    parser_id = (parser_id or "").strip().lower()
    if parser_id not in _PARSERS:
        raise ParseError(f"unknown parser id: {parser_id!r}")

    local_device = (local_device or "").strip()
    output = output or ""
    shape_ok, shape_error = _PARSERS[parser_id]

    rows = parse_with_template(TEXTFSM_TEMPLATES[parser_id], output)
    warnings = []
    entries = _build_entries(local_device, rows, warnings)

    if not entries and not shape_ok(output):
        raise ParseError(shape_error)

    log.debug(f"{parser_id}: parsed {len(entries)} neighbor(s) for {local_device}")

    return ParseResult(
        local_device=local_device,
        entries=entries,
        identity_hint_ips=extract_ips_from_text(output),
        warnings=_uniq(warnings),
    )
