"""
Tools that inspect and reorganize the remote library.

Every path these tools touch must lie under the configured library path. The
check runs before any remote command is issued.
"""

import posixpath

from ..errors import PathOutsideLibrary
from ..filesystem.protocol import FileSystemClient
from .tool import Tool


def is_within(path: str, root: str, allow_root: bool = True) -> bool:
  if not path or not posixpath.isabs(path):
    return False
  normalized = posixpath.normpath(path)
  root = posixpath.normpath(root)
  if normalized == root:
    return allow_root
  return normalized.startswith(root.rstrip("/") + "/")


class LibraryTool(Tool):
  def __init__(self, func, client: FileSystemClient, library_path: str):
    self.client = client
    self.library_path = posixpath.normpath(library_path)
    super().__init__(func)

  def require_within_library(self, path: str, allow_root: bool = True) -> str:
    if not is_within(path, self.library_path, allow_root):
      self.logger.warning(f"Rejected path outside the library: '{path}' (library: '{self.library_path}')")
      raise PathOutsideLibrary(path, self.library_path)
    return posixpath.normpath(path)


class LibraryDescriptionTool(LibraryTool):
  def __init__(self, client: FileSystemClient, library_path: str):
    super().__init__(self.library_description, client, library_path)

  async def library_description(self) -> dict:
    """
    Describes the library: every directory with the names of the files directly inside it.

    Use it to learn how the library is organized before moving anything into it.
    Paths passed to the move tool must be derived from this response.
    """
    return await self.client.describe_directory(self.library_path)


class ListDirectoriesTool(LibraryTool):
  def __init__(self, client: FileSystemClient, library_path: str):
    super().__init__(self.list_directories, client, library_path)

  async def list_directories(self) -> dict:
    """
    Lists every directory in the library, recursively, as absolute paths.
    """
    directories = await self.client.list_directories_in(self.library_path)
    return {"directories": directories}


class ListFilesTool(LibraryTool):
  def __init__(self, client: FileSystemClient, library_path: str):
    super().__init__(self.list_files, client, library_path)

  async def list_files(self, path: str) -> dict:
    """
    Lists the files directly inside a directory of the library.

    Args:
      path (str): Absolute path of a directory inside the library.
    """
    path = self.require_within_library(path)
    files = await self.client.list_files_in(path)
    return {"path": path, "files": files}


class MoveTool(LibraryTool):
  def __init__(self, client: FileSystemClient, library_path: str):
    super().__init__(self.move, client, library_path)

  async def move(self, source_path: str, destination_path: str) -> dict:
    """
    Moves and/or renames a file or directory, like 'mv -T source_path destination_path'.

    Both arguments have to be absolute paths derived from the library_description tool response.
    The destination path MUST NOT exist, otherwise the move fails.
    All missing parent directories of the destination are created automatically.

    Args:
      source_path (str): Absolute path of the file or directory to move.
      destination_path (str): Absolute path it should have afterwards.
    """
    source = self.require_within_library(source_path, allow_root=False)
    destination = self.require_within_library(destination_path, allow_root=False)

    await self.client.move(source, destination)
    return {
      "status": "success",
      "message": "File moved successfully",
      "source": source,
      "destination": destination,
    }
