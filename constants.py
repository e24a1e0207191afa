"""
Constants used throughout the topology discovery project.
"""

# Default SSH port
DEFAULT_SSH_PORT = 22

# Collection defaults
DEFAULT_CONCURRENCY = 6
DEFAULT_COMMAND_TIMEOUT = 10.0
DEFAULT_SSH_CONNECT_TIMEOUT = 5
CANCEL_POLL_INTERVAL = 0.2

# Transports
TRANSPORT_OPENSSH = "openssh"
TRANSPORT_NETMIKO = "netmiko"

# Device OS identifiers (inventory `device_os` values)
NETWORK_OS_CISCO_IOSXE = "cisco_iosxe"
NETWORK_OS_SONIC_DELL = "sonic_dell"

# Netmiko device types per device OS
NETMIKO_DEVICE_TYPES = {
    NETWORK_OS_CISCO_IOSXE: "cisco_xe",
    NETWORK_OS_SONIC_DELL: "linux",
}

# Neighbor discovery protocols / preferences
PROTOCOL_LLDP = "lldp"
PROTOCOL_CDP = "cdp"
NEIGHBOR_PREF_AUTO = "auto"

# Parser IDs
PARSER_CISCO_LLDP = "cisco_iosxe_show_lldp_neighbors"
PARSER_CISCO_LLDP_DETAIL = "cisco_iosxe_show_lldp_neighbors_detail"
PARSER_CISCO_CDP = "cisco_iosxe_show_cdp_neighbors"
PARSER_SONIC_LLDP = "sonic_show_lldp_neighbors"

# TextFSM template paths (relative to the project root)
TEXTFSM_DIR = "textfsm_templates"
TEXTFSM_TEMPLATES = {
    PARSER_CISCO_LLDP: "cisco_iosxe_show_lldp_neighbors.textfsm",
    PARSER_CISCO_LLDP_DETAIL: "cisco_iosxe_show_lldp_neighbors_detail.textfsm",
    PARSER_CISCO_CDP: "cisco_iosxe_show_cdp_neighbors.textfsm",
    PARSER_SONIC_LLDP: "sonic_show_lldp_neighbors.textfsm",
}

# Topology node ID prefixes
CONFIGURED_NODE_PREFIX = "cfg:"
DISCOVERED_NODE_PREFIX = "unk:"

# Layered rendering
MAX_LAYER = 4
MAX_LAYER_NEIGHBORS = 4
MAX_FLAT_LINKS_PREVIEW = 3
DEFAULT_RENDER_WIDTH = 80

# Render views
VIEW_LAYERED = "layered"
VIEW_EDGES = "edges"
VIEW_FLAT = "flat"
VIEWS = (VIEW_LAYERED, VIEW_EDGES, VIEW_FLAT)

# Logging format
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

# Console output
VISUALIZER_BANNER = "=" * 60
VISUALIZER_TITLE = "          NEIGHBOR DISCOVERY TOPOLOGY"
