import time
from typing import Optional

import paramiko

from ..logs import get_logger
from .protocol import CommandResult

READ_SIZE = 32768
POLL_INTERVAL = 0.01


class ParamikoShellClient:
  """ShellClient over an SSH connection."""

  def __init__(
    self,
    host: str,
    port: int = 22,
    username: Optional[str] = None,
    password: Optional[str] = None,
    key_filename: Optional[str] = None,
    timeout: float = 30.0,
  ):
    self.host = host
    self.port = port
    self.username = username
    self.password = password
    self.key_filename = key_filename
    self.timeout = timeout
    self.logger = get_logger("ssh")
    self._client: Optional[paramiko.SSHClient] = None

  @property
  def is_connected(self) -> bool:
    if self._client is None:
      return False
    transport = self._client.get_transport()
    return bool(transport and transport.is_active())

  def connect(self) -> None:
    self.disconnect()
    client = paramiko.SSHClient()
    client.load_system_host_keys()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    client.connect(
      hostname=self.host,
      port=self.port,
      username=self.username,
      password=self.password,
      key_filename=self.key_filename,
      timeout=self.timeout,
      look_for_keys=self.key_filename is None and self.password is None,
    )
    self._client = client
    self.logger.debug(f"Connected to {self.username}@{self.host}:{self.port}")

  def disconnect(self) -> None:
    if self._client is not None:
      self._client.close()
      self._client = None

  def run_command(self, command: str) -> CommandResult:
    """
    Run command and collect its output.

    stdout and stderr are read as data arrives on either, so a command that fills
    one stream while the other stays open cannot stall on a full channel window.
    """
    if self._client is None:
      raise ConnectionError(f"Not connected to {self.host}:{self.port}")

    _, stdout, _ = self._client.exec_command(command, timeout=self.timeout)
    channel = stdout.channel
    output, error = bytearray(), bytearray()
    while True:
      received = False
      if channel.recv_ready():
        output += channel.recv(READ_SIZE)
        received = True
      if channel.recv_stderr_ready():
        error += channel.recv_stderr(READ_SIZE)
        received = True
      if received:
        continue
      if channel.exit_status_ready():
        break
      time.sleep(POLL_INTERVAL)

    return CommandResult(
      output=output.decode("utf-8", errors="replace"),
      error=error.decode("utf-8", errors="replace"),
      exit_status=channel.recv_exit_status(),
    )
