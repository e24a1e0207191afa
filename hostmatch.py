"""
Hostname and IP normalization used to match discovered neighbors to inventory.

Normalization here is meant for topology matching only, not for DNS
resolution or SSH connection behavior.
"""

import ipaddress
import re


_IP_TOKEN_SPLIT = re.compile(r"[\s,;|()\[\]{}<>\"'=]+")


def parse_ip(value):
    """
    Parse an IP literal (v4 or v6) into its canonical string form.

    Args:
        value: Candidate string.

    Returns:
        Canonical IP string, or None if the value is not an IP literal.
    """

    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def normalize_host_full(s):
    """
    Normalize a hostname/system-name for comparison.

    Trims whitespace, lower-cases, removes a trailing dot (FQDN form) and
    strips the brackets around IPv6 literals like "[2001:db8::1]".
    """

    s = (s or "").strip()
    if not s:
        return ""
    s = s.rstrip(".")
    if len(s) >= 2 and s[0] == "[" and s[-1] == "]":
        s = s[1:-1]
    return s.strip().lower()


def normalize_host_short(s):
    """
    Return the "shortname" used for loose matching.

    IP literals are returned in canonical form; hostnames are reduced to
    their first DNS label.
    """

    full = normalize_host_full(s)
    if not full:
        return ""

    ip = parse_ip(full)
    if ip:
        return ip

    return full.split(".", 1)[0]


def host_name_matches(a, b):
    """
    Check whether two host names refer to the same device.

    Exact normalized match first, else normalized shortname match. No regex,
    glob or substring matching is attempted.
    """

    a_full = normalize_host_full(a)
    b_full = normalize_host_full(b)
    if not a_full or not b_full:
        return False
    if a_full == b_full:
        return True
    return normalize_host_short(a_full) == normalize_host_short(b_full)


def dedup_ips(values):
    """De-duplicate IP literals in order, dropping anything that does not parse."""

    seen = set()
    out = []
    for value in values or []:
        ip = parse_ip(value)
        if ip is None or ip in seen:
            continue
        seen.add(ip)
        out.append(ip)
    return out


def choose_identity_ips(router_id, mgmt_ips):
    """
    Build the identity IP set for a configured host.

    Any returned IP counts as a positive identity match for the host, which
    covers devices only reachable via a separate management VRF.

    Args:
        router_id: Loopback/router-id address (may be empty).
        mgmt_ips: Management addresses in priority order.

    Returns:
        Canonical IP strings, router-id first, then mgmt IPs in their
        original order. Invalid and empty tokens are dropped silently.
    """

    return dedup_ips([router_id] + list(mgmt_ips or []))


def extract_ips_from_text(text):
    """
    Return the de-duplicated IP literals found anywhere in a block of text.

    Best-effort identity hint generator, not a strict parser.
    """

    if not text or not text.strip():
        return []

    tokens = []
    for tok in _IP_TOKEN_SPLIT.split(text):
        tok = tok.strip(".,;")
        if tok:
            tokens.append(tok)
    return dedup_ips(tokens)
