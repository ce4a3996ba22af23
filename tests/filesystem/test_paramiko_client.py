"""
Tests for ParamikoShellClient.run_command against a scripted SSH channel.
"""

from types import SimpleNamespace

import pytest

from autofetch.filesystem import ParamikoShellClient


class FakeChannel:
  """
  Channel that hands out scripted chunks.

  With `stdout_after_stderr` set, stdout data only becomes available once every
  stderr chunk was consumed, the way a remote command blocks writing stdout while
  its stderr window is full.
  """

  def __init__(self, stdout: list[bytes], stderr: list[bytes], exit_status: int = 0, stdout_after_stderr=False):
    self.stdout = list(stdout)
    self.stderr = list(stderr)
    self.exit_status = exit_status
    self.stdout_after_stderr = stdout_after_stderr

  def recv_ready(self) -> bool:
    if self.stdout_after_stderr and self.stderr:
      return False
    return bool(self.stdout)

  def recv(self, size: int) -> bytes:
    return self.stdout.pop(0)

  def recv_stderr_ready(self) -> bool:
    return bool(self.stderr)

  def recv_stderr(self, size: int) -> bytes:
    return self.stderr.pop(0)

  def exit_status_ready(self) -> bool:
    return not self.stdout and not self.stderr

  def recv_exit_status(self) -> int:
    return self.exit_status


class FakeSSHClient:
  def __init__(self, channel: FakeChannel):
    self.channel = channel
    self.commands = []

  def exec_command(self, command: str, timeout=None):
    self.commands.append(command)
    stream = SimpleNamespace(channel=self.channel)
    return None, stream, stream


def connected_client(channel: FakeChannel) -> ParamikoShellClient:
  client = ParamikoShellClient("nas.local")
  client._client = FakeSSHClient(channel)
  return client


class TestRunCommand:
  def test_output_and_exit_status(self):
    client = connected_client(FakeChannel([b"/lib/a\n", b"/lib/b\n"], []))

    result = client.run_command("find /lib -type f")

    assert result.output == "/lib/a\n/lib/b\n"
    assert result.error == ""
    assert result.exit_status == 0
    assert client._client.commands == ["find /lib -type f"]

  def test_stderr_is_drained_while_stdout_is_pending(self):
    """A command writing lots of stderr before its stdout still completes"""
    stderr = [b"warning: " + bytes(str(i), "ascii") + b"\n" for i in range(100)]
    client = connected_client(FakeChannel([b"done\n"], stderr, exit_status=1, stdout_after_stderr=True))

    result = client.run_command("noisy")

    assert result.output == "done\n"
    assert result.error.count("warning") == 100
    assert result.exit_status == 1

  def test_undecodable_bytes_are_replaced(self):
    client = connected_client(FakeChannel([b"caf\xe9\n"], []))

    assert client.run_command("ls").output == "caf�\n"

  def test_not_connected(self):
    with pytest.raises(ConnectionError, match="nas.local:22"):
      ParamikoShellClient("nas.local").run_command("ls")
