"""Router implementation that runs commands through the system OpenSSH client."""

import logging
import subprocess
import time

from constants import (
    CANCEL_POLL_INTERVAL,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_SSH_CONNECT_TIMEOUT,
    DEFAULT_SSH_PORT,
)
from router_base import CommandOutput, Router_Base

log = logging.getLogger(__name__)


class Router_OpenSSH(Router_Base):
    """Non-interactive `ssh host -- command` execution with timeout and cancellation."""

    def __init__(self, device, default_timeout=DEFAULT_COMMAND_TIMEOUT,
                 connect_timeout=DEFAULT_SSH_CONNECT_TIMEOUT, batch_mode=True,
                 ssh_options=None, ssh_binary="ssh", poll_interval=CANCEL_POLL_INTERVAL):
        """
        Initialize OpenSSH runner.

        Args:
            device: DeviceConfig for the target host.
            default_timeout: Seconds allowed per command when the caller gives none.
            connect_timeout: SSH ConnectTimeout in seconds.
            batch_mode: Pass BatchMode=yes so password prompts fail instead of hanging.
            ssh_options: Extra "Key=Value" strings passed as -o options.
            ssh_binary: Path of the ssh client.
            poll_interval: Seconds between cancellation checks.
        """

        super().__init__(device, default_timeout)
        self.connect_timeout = connect_timeout
        self.batch_mode = batch_mode
        self.ssh_options = list(ssh_options or [])
        self.ssh_binary = ssh_binary
        self.poll_interval = poll_interval


    def build_command(self, remote_cmd):
        """
        Build the ssh argv for a remote command.

        Args:
            remote_cmd: Command line to run on the device.

        Returns:
            List of arguments.
        """

        d = self.device
        args = [self.ssh_binary]

        if d.ssh_config_file:
            args += ["-F", d.ssh_config_file]
        if d.port and d.port != DEFAULT_SSH_PORT:
            args += ["-p", str(d.port)]
        if d.jump_host:
            args += ["-J", d.jump_host]
        if d.identity_file:
            args += ["-i", d.identity_file]
        if d.username:
            args += ["-l", d.username]
        if self.batch_mode:
            args += ["-o", "BatchMode=yes"]
        if self.connect_timeout and self.connect_timeout > 0:
            args += ["-o", f"ConnectTimeout={int(self.connect_timeout)}"]
        for kv in self.ssh_options:
            kv = kv.strip()
            if kv:
                args += ["-o", kv]

        args += [d.host, "--", remote_cmd]
        return args


    def run_command(self, cmd, timeout=None, cancel_event=None):
        """
        Execute a command on the device via ssh.

        The child process is killed when the timeout expires or cancel_event
        is set, so a hung remote command never outlives the attempt.

        Args:
            cmd: Command to execute.
            timeout: Seconds allowed for this command.
            cancel_event: threading.Event signalling cancellation.

        Returns:
            CommandOutput.
        """

        cmd = (cmd or "").strip()
        if not cmd:
            return CommandOutput(error="empty remote command")
        if cancel_event is not None and cancel_event.is_set():
            return CommandOutput(error="cancelled", cancelled=True)

        timeout = self._effective_timeout(timeout)
        argv = self.build_command(cmd)
        log.debug(f"{self.host}: exec {' '.join(argv)}")

        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            return CommandOutput(error=f"failed to start ssh: {e}")

        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            wait = min(self.poll_interval, remaining) if remaining > 0 else 0
            try:
                stdout, stderr = proc.communicate(timeout=wait)
                break
            except subprocess.TimeoutExpired:
                pass

            if cancel_event is not None and cancel_event.is_set():
                stdout, stderr = self._kill(proc)
                return CommandOutput(stdout, stderr, error="cancelled", cancelled=True)
            if time.monotonic() >= deadline:
                stdout, stderr = self._kill(proc)
                return CommandOutput(stdout, stderr, error=f"timeout after {timeout:g}s", timed_out=True)

        if proc.returncode != 0:
            detail = (stderr or "").strip().splitlines()
            error = f"exit status {proc.returncode}"
            if detail:
                error += f": {detail[-1]}"
            return CommandOutput(stdout, stderr, error=error)

        return CommandOutput(stdout, stderr)


    def _kill(self, proc):
        """Kill the ssh child and collect whatever it printed."""

        proc.kill()
        try:
            return proc.communicate(timeout=self.poll_interval * 5)
        except subprocess.TimeoutExpired:
            log.warning(f"{self.host}: ssh process did not exit after kill")
            return "", ""
