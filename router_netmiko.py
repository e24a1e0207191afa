"""Router implementation using a netmiko interactive SSH session."""

import logging
import threading

from netmiko import ConnectHandler

from constants import (
    CANCEL_POLL_INTERVAL,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_SSH_CONNECT_TIMEOUT,
    NETMIKO_DEVICE_TYPES,
)
from router_base import CommandOutput, Router_Base

log = logging.getLogger(__name__)


class Router_Netmiko(Router_Base):
    """Router implementation for devices that need password or CLI-prompt handling."""

    def __init__(self, device, default_timeout=DEFAULT_COMMAND_TIMEOUT,
                 connect_timeout=DEFAULT_SSH_CONNECT_TIMEOUT, poll_interval=CANCEL_POLL_INTERVAL):
        """
        Initialize netmiko session parameters.

        Args:
            device: DeviceConfig for the target host.
            default_timeout: Seconds allowed per command when the caller gives none.
            connect_timeout: TCP connect timeout in seconds.
            poll_interval: Seconds between cancellation checks while a command runs.
        """

        super().__init__(device, default_timeout)
        self.connect_timeout = connect_timeout
        self.poll_interval = poll_interval
        self.router_connect = None


    def connection_params(self):
        """Build ConnectHandler keyword arguments for the device."""

        d = self.device
        params = {
            'device_type': NETMIKO_DEVICE_TYPES.get(d.device_os, 'linux'),
            'host': d.host,
            'username': d.username,
            'password': d.password,
            'port': d.port,
            'conn_timeout': self.connect_timeout,
            'fast_cli': False,
        }
        if d.ssh_config_file:
            params['ssh_config_file'] = d.ssh_config_file
        if d.identity_file:
            params['use_keys'] = True
            params['key_file'] = d.identity_file
        return params


    def connect(self):
        """
        Establish SSH connection to the device.

        Returns:
            Tuple of (success, error_message).
        """

        try:
            self.router_connect = ConnectHandler(**self.connection_params())
            return True, None
        except Exception as e:
            self.router_connect = None
            return False, str(e)


    def disconnect(self):
        """Disconnect from the device."""

        conn = self.router_connect
        self.router_connect = None
        if conn is None:
            return
        try:
            conn.disconnect()
        except Exception as e:
            log.debug(f"{self.host}: error during disconnect: {e}")


    def run_command(self, cmd, timeout=None, cancel_event=None):
        """
        Execute a command on the device.

        If cancel_event fires while the command runs, the session is torn down
        so the blocked read fails instead of hanging.

        Args:
            cmd: Command to execute.
            timeout: Seconds allowed for this command.
            cancel_event: threading.Event signalling cancellation.

        Returns:
            CommandOutput. netmiko merges stderr into the session, so stderr is empty.
        """

        cmd = (cmd or "").strip()
        if not cmd:
            return CommandOutput(error="empty remote command")
        if cancel_event is not None and cancel_event.is_set():
            return CommandOutput(error="cancelled", cancelled=True)

        if self.router_connect is None:
            status, error = self.connect()
            if not status:
                if cancel_event is not None and cancel_event.is_set():
                    return CommandOutput(error="cancelled", cancelled=True)
                return CommandOutput(error=f"connect failed: {error}")
            # ConnectHandler blocks; a cancel during login is only seen here
            if cancel_event is not None and cancel_event.is_set():
                log.debug(f"{self.host}: cancelled while connecting, closing session")
                self.disconnect()
                return CommandOutput(error="cancelled", cancelled=True)

        conn = self.router_connect
        timeout = self._effective_timeout(timeout)
        done = threading.Event()
        watcher = None
        if cancel_event is not None:
            watcher = threading.Thread(
                target=self._watch_cancel,
                args=(cancel_event, done),
                name=f"cancel-watch-{self.host}",
                daemon=True,
            )
            watcher.start()

        try:
            output = conn.send_command(cmd, read_timeout=timeout)
        except Exception as e:
            if cancel_event is not None and cancel_event.is_set():
                return CommandOutput(error="cancelled", cancelled=True)
            timed_out = "timeout" in type(e).__name__.lower() or "timed out" in str(e).lower()
            self.disconnect()
            return CommandOutput(error=str(e) or type(e).__name__, timed_out=timed_out)
        finally:
            done.set()
            if watcher is not None:
                watcher.join()

        if cancel_event is not None and cancel_event.is_set():
            return CommandOutput(output, error="cancelled", cancelled=True)
        return CommandOutput(output)


    def _watch_cancel(self, cancel_event, done):

        while not done.is_set():
            if cancel_event.wait(self.poll_interval):
                if not done.is_set():
                    log.debug(f"{self.host}: cancelled, closing session")
                    self.disconnect()
                return
