"""
Remote filesystem operations over a single serialized shell connection.

Every operation takes the channel lock, connects, runs its commands and
disconnects again before the lock is released. Operations issued by different
tools and conversations are therefore globally serialized, and a broken session
never outlives the operation that noticed it.

All paths are shell quoted. Any output on a command's error stream fails the
operation with RemoteCommandFailed carrying that output verbatim.
"""

import asyncio
import posixpath
import shlex
import threading
from typing import Callable, TypeVar

from ..errors import PathAlreadyExists, PathNotFound, RemoteCommandFailed
from ..logs import get_logger
from .protocol import ShellClient

EXISTS_SENTINEL = "EXISTS"

T = TypeVar("T")


class SshFileSystemClient:
  def __init__(self, client: ShellClient):
    self.client = client
    self.logger = get_logger("filesystem")
    self._lock = asyncio.Lock()
    # Held by the executor thread for the whole connect -> run -> disconnect cycle,
    # so a caller cancelled mid-operation cannot let the next operation overlap it.
    self._connection_lock = threading.Lock()

  async def describe_directory(self, path: str) -> dict[str, list[str]]:
    """Map every directory under path to the names of the regular files directly in it."""

    def action():
      self._require_directory(path)
      return self._library_paths(path)

    return await self._with_connection(action)

  async def list_directories_in(self, path: str) -> list[str]:
    def action():
      self._require_directory(path)
      return self._lines(self._run_command(f"find {shlex.quote(path)} -type d"))

    return await self._with_connection(action)

  async def list_files_in(self, path: str) -> list[str]:
    def action():
      self._require_directory(path)
      return self._lines(self._run_command(f"find {shlex.quote(path)} -maxdepth 1 -type f"))

    return await self._with_connection(action)

  async def move(self, source_path: str, destination_path: str) -> None:
    """
    Move or rename a file or directory.

    The destination must not exist. Missing parent directories of the destination
    are created first.

    Raises:
      PathNotFound: The source is neither a file nor a directory
      PathAlreadyExists: The destination exists
      RemoteCommandFailed: A command wrote to its error stream
    """

    def action():
      if not self._file_exists(source_path) and not self._folder_exists(source_path):
        raise PathNotFound(source_path, f"Source path {source_path} does not exist")
      if self._any_exists(destination_path):
        raise PathAlreadyExists(destination_path)

      self._create_destination_parent_path(destination_path)
      self._run_command(f"mv -T -- {shlex.quote(source_path)} {shlex.quote(destination_path)}")
      self.logger.info(f"Moved '{source_path}' to '{destination_path}'")

    await self._with_connection(action)

  async def remove_directory(self, path: str) -> None:
    def action():
      self._run_command(f"rm -rf -- {shlex.quote(path)}")
      self.logger.info(f"Removed directory '{path}'")

    await self._with_connection(action)

  async def remove_file(self, path: str) -> None:
    def action():
      self._run_command(f"rm -f -- {shlex.quote(path)}")
      self.logger.info(f"Removed file '{path}'")

    await self._with_connection(action)

  async def _with_connection(self, action: Callable[[], T]) -> T:
    async with self._lock:
      loop = asyncio.get_running_loop()
      return await loop.run_in_executor(None, self._connected, action)

  def _connected(self, action: Callable[[], T]) -> T:
    with self._connection_lock:
      if not self.client.is_connected:
        self.logger.debug("Connecting to remote shell")
        self.client.connect()

      try:
        return action()
      finally:
        if self.client.is_connected:
          self.client.disconnect()
          self.logger.debug("Disconnected from remote shell")

  def _run_command(self, command: str) -> str:
    self.logger.debug(f"Running remote command: {command}")
    result = self.client.run_command(command)
    if result.error:
      self.logger.error(f"Remote command failed: {command}: {result.error.strip()}")
      raise RemoteCommandFailed(command, result.error)
    return result.output

  def _library_paths(self, base_path: str) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for file_path in self._lines(self._run_command(f"find {shlex.quote(base_path)} -type f")):
      directory = posixpath.dirname(file_path)
      name = posixpath.basename(file_path)
      if not directory:
        continue
      names = groups.setdefault(directory, [])
      if name:
        names.append(name)
    return groups

  def _create_destination_parent_path(self, destination_path: str) -> None:
    parent_path = posixpath.dirname(destination_path)
    if not parent_path or self._folder_exists(parent_path) or self._file_exists(parent_path):
      return

    self._run_command(f"umask 002 && mkdir -p -- {shlex.quote(parent_path)}")

  def _require_directory(self, path: str) -> None:
    if not self._folder_exists(path):
      raise PathNotFound(path, f"Directory not found: {path}")

  def _folder_exists(self, path: str) -> bool:
    return self._path_exists(path, "d")

  def _file_exists(self, path: str) -> bool:
    return self._path_exists(path, "f")

  def _any_exists(self, path: str) -> bool:
    return self._path_exists(path, "e")

  def _path_exists(self, path: str, descriptor: str) -> bool:
    output = self._run_command(f'[ -{descriptor} {shlex.quote(path)} ] && echo "EXISTS" || echo "NOT_EXISTS"')
    return output.strip() == EXISTS_SENTINEL

  @staticmethod
  def _lines(output: str) -> list[str]:
    return [line for line in output.split("\n") if line]
