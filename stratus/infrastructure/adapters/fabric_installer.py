"""
Fabric Installer

Architectural Intent:
- Infrastructure adapter implementing InstallerPort via Fabric/SSH
- Copies the bootstrap script to the new machine and runs it with the agent
  environment, bounded by the caller's remaining time

Security:
- SSH connections use connect_timeout, allow_agent, look_for_keys
- Every value interpolated into a remote command is quoted with shlex.quote()
"""

import logging
import os
import shlex
import socket
import time

from fabric import Connection
from invoke.exceptions import CommandTimedOut, UnexpectedExit
from paramiko.ssh_exception import SSHException

from stratus.domain.errors import InstallerError
from stratus.domain.ports.installer_port import InstallerPort
from stratus.domain.value_objects.installation import InstallationRequest

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 30


class FabricInstaller(InstallerPort):
    """Adapter implementing InstallerPort via Fabric/SSH."""

    def __init__(self, port: int = 22, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT):
        self.port = port
        self.connect_timeout = connect_timeout

    def _get_connection(self, request: InstallationRequest, timeout: float) -> Connection:
        connect_kwargs = {
            "allow_agent": True,
            "look_for_keys": True,
        }
        if request.key_file:
            connect_kwargs["key_filename"] = request.key_file
        if request.password:
            connect_kwargs["password"] = request.password
        return Connection(
            host=request.address,
            user=request.username,
            port=self.port,
            connect_timeout=max(1, int(min(self.connect_timeout, timeout))),
            connect_kwargs=connect_kwargs,
        )

    def install(self, request: InstallationRequest, timeout: float) -> None:
        if timeout <= 0:
            raise InstallerError(f"No time left to install agent on {request.address}")

        end = time.monotonic() + timeout
        remote_dir = shlex.quote(request.remote_directory)
        script_name = os.path.basename(request.bootstrap_script)
        remote_script = f"{request.remote_directory.rstrip('/')}/{script_name}"
        local_script = os.path.join(request.local_directory, request.bootstrap_script)

        logger.info(
            "Installing agent on %s@%s (remote directory %s)",
            request.username,
            request.address,
            request.remote_directory,
        )
        try:
            with self._get_connection(request, timeout) as conn:
                conn.run(f"mkdir -p {remote_dir}", hide=True, timeout=self._left(end))
                if os.path.isfile(local_script):
                    conn.put(local_script, remote=remote_script)
                else:
                    logger.debug(
                        "No local bootstrap script at %s, using the one on the image",
                        local_script,
                    )
                env = " ".join(
                    f"{key}={shlex.quote(value)}"
                    for key, value in sorted(request.environment.items())
                )
                command = (
                    f"cd {remote_dir} && chmod +x {shlex.quote(remote_script)} && "
                    f"{env} nohup {shlex.quote(remote_script)}"
                )
                result = conn.run(command, hide=True, warn=True, timeout=self._left(end))
        except CommandTimedOut as e:
            raise InstallerError(
                f"Agent installation on {request.address} timed out after {e.timeout}s"
            ) from e
        except (UnexpectedExit, SSHException, socket.error) as e:
            raise InstallerError(
                f"Agent installation on {request.address} failed: {e}"
            ) from e

        if result.failed:
            logger.error("Bootstrap failed on %s: %s", request.address, result.stderr)
            raise InstallerError(
                f"Bootstrap script exited with {result.exited} on {request.address}: "
                f"{result.stderr.strip()}"
            )
        logger.info("Agent installation finished on %s", request.address)

    @staticmethod
    def _left(end: float) -> int:
        left = end - time.monotonic()
        if left <= 0:
            raise InstallerError("Installation exceeded its time budget")
        return max(1, int(left))
