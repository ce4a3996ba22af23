from dataclasses import dataclass
from typing import Protocol


@dataclass
class CommandResult:
  output: str
  error: str = ""
  exit_status: int = 0


class ShellClient(Protocol):
  """A remote shell transport. Calls block; callers run them off the event loop."""

  @property
  def is_connected(self) -> bool: ...

  def connect(self) -> None: ...

  def disconnect(self) -> None: ...

  def run_command(self, command: str) -> CommandResult: ...


class FileSystemClient(Protocol):
  async def describe_directory(self, path: str) -> dict[str, list[str]]: ...

  async def list_directories_in(self, path: str) -> list[str]: ...

  async def list_files_in(self, path: str) -> list[str]: ...

  async def move(self, source_path: str, destination_path: str) -> None: ...

  async def remove_directory(self, path: str) -> None: ...

  async def remove_file(self, path: str) -> None: ...
