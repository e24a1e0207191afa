"""Base router class for running neighbor discovery commands over SSH."""

import logging

from constants import DEFAULT_COMMAND_TIMEOUT, TRANSPORT_NETMIKO, TRANSPORT_OPENSSH

log = logging.getLogger(__name__)


class CommandOutput:
    """Outcome of one remote command. `error` is None on success."""

    def __init__(self, stdout="", stderr="", error=None, timed_out=False, cancelled=False):

        self.stdout = stdout or ""
        self.stderr = stderr or ""
        self.error = error
        self.timed_out = timed_out
        self.cancelled = cancelled


    @property
    def ok(self):

        return self.error is None


    def __repr__(self):

        state = "ok" if self.ok else f"error={self.error!r}"
        return f"CommandOutput({state}, stdout={len(self.stdout)}B, stderr={len(self.stderr)}B)"


class Router_Base:
    """Base class for router/switch communication via SSH."""

    def __init__(self, device, default_timeout=DEFAULT_COMMAND_TIMEOUT):
        """
        Initialize router connection parameters.

        Args:
            device: DeviceConfig for the target host.
            default_timeout: Seconds allowed per command when the caller gives none.
        """

        self.device = device
        self.host = device.host
        self.default_timeout = default_timeout


    def disconnect(self):
        """Release any connection held by the router."""

        pass


    def run_command(self, cmd, timeout=None, cancel_event=None):
        """
        Execute a command on the router.

        Implementations never raise for remote failures; they report them in
        the returned CommandOutput. A set cancel_event must abort the command.

        Args:
            cmd: Command to execute.
            timeout: Seconds allowed for this command.
            cancel_event: threading.Event signalling cancellation.

        Returns:
            CommandOutput.
        """

        raise NotImplementedError


    def _effective_timeout(self, timeout):

        if timeout is None or timeout <= 0:
            return self.default_timeout
        return timeout


    def __enter__(self):

        return self


    def __exit__(self, exc_type, exc, tb):

        self.disconnect()
        return False


def get_router(device, default_timeout=DEFAULT_COMMAND_TIMEOUT, **kwargs):
    """
    Pick the transport implementation for a device.

    Args:
        device: DeviceConfig.
        default_timeout: Per-command default timeout.
        **kwargs: Transport specific options.

    Returns:
        Router_Base subclass instance.
    """

    if device.transport == TRANSPORT_NETMIKO:
        from router_netmiko import Router_Netmiko
        return Router_Netmiko(device, default_timeout=default_timeout, **kwargs)

    if device.transport not in ("", TRANSPORT_OPENSSH):
        log.warning(f"{device.host}: unknown transport {device.transport!r}, using {TRANSPORT_OPENSSH}")

    from router_openssh import Router_OpenSSH
    return Router_OpenSSH(device, default_timeout=default_timeout, **kwargs)
