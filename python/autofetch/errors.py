"""
Exception classes for autofetch.

Remote channel errors propagate to the tool that issued the operation. The
agent turns every tool failure into an observation, so none of these reach
the chat surface directly.
"""

from typing import Optional


class AutofetchError(Exception):
  """Base class for all autofetch errors."""


class UnsupportedAgentKind(AutofetchError, ValueError):
  """
  Raised when the registry is asked for an agent kind it has no factory for.

  Attributes:
    kind: The requested agent kind
  """

  def __init__(self, kind):
    self.kind = kind
    super().__init__(f"Unknown agent kind: {kind}")


class InvalidParameters(AutofetchError, ValueError):
  """
  Raised when tool arguments are missing, unexpected or malformed.

  Attributes:
    tool_name: Name of the tool that rejected the arguments
  """

  def __init__(self, message: str, tool_name: Optional[str] = None):
    self.tool_name = tool_name
    super().__init__(message)


class PathNotFound(AutofetchError, FileNotFoundError):
  """Raised when a remote path that must exist does not."""

  def __init__(self, path: str, message: Optional[str] = None):
    self.path = path
    super().__init__(message or f"Path not found: {path}")


class PathAlreadyExists(AutofetchError, FileExistsError):
  """Raised when a move would overwrite or merge into an existing destination."""

  def __init__(self, path: str):
    self.path = path
    super().__init__(f"Destination path already exists: {path}")


class PathOutsideLibrary(AutofetchError, ValueError):
  """
  Raised when a relocating operation names a path outside the library root.

  Attributes:
    path: The offending path
    library_path: The configured library root
  """

  def __init__(self, path: str, library_path: str):
    self.path = path
    self.library_path = library_path
    super().__init__(
      f"Path '{path}' is outside the library. Paths must be absolute, derived from the "
      f"library_description tool response and start with the library path: {library_path}"
    )


class RemoteCommandFailed(AutofetchError, RuntimeError):
  """
  Raised when a remote command writes anything to its error stream.

  Attributes:
    command: The command that was executed
    error: The error output, verbatim
  """

  def __init__(self, command: str, error: str):
    self.command = command
    self.error = error
    super().__init__(error)


class DownloadNotFound(AutofetchError, LookupError):
  """Raised when the download client has no download with the given id."""

  def __init__(self, download_id: int):
    self.download_id = download_id
    super().__init__(f"Download {download_id} not found")
