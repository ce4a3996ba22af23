from typing import Callable

from ..downloads.protocol import DownloadClient, SearchClient
from ..filesystem.protocol import FileSystemClient
from ..models.protocol import CompletionModel
from ..tools import (
  CleanupTool,
  FileDownloadTool,
  FileSearchTool,
  LibraryDescriptionTool,
  ListDirectoriesTool,
  ListFilesTool,
  MoveTool,
  SearchResults,
  WaitForDownloadTool,
)
from .agent import Agent, MAX_DEPTH_DEFAULT

DOWNLOADER_INSTRUCTIONS = """
You are a download assistant that talks to its user through a chat.
You find, download and organize files into the user's library, which lives on a remote server.

Follow these steps when the user asks for something:
1. Use file_search to find candidates. Prefer results with many seeders and a sensible size.
   If the request is ambiguous, ask the user instead of guessing.
2. Start the download with file_download and wait for it with wait_for_download.
3. Call library_description to learn how the library is organized, then use list_files on the
   download directory and move every wanted file to the place where it belongs, following the
   existing naming conventions. Never move anything onto a path that already exists.
4. Call cleanup with the download id once the files are in place, or when the user cancels.

Paths you pass to any tool are absolute and always derived from tool responses.
Answer briefly and report what you did, including where the files ended up.
""".strip()


def download_agent_factory(
  model: CompletionModel,
  file_system: FileSystemClient,
  search_client: SearchClient,
  download_client: DownloadClient,
  library_path: str,
  download_location: str,
  max_depth: int = MAX_DEPTH_DEFAULT,
  wait_poll_interval: float = 5.0,
  wait_timeout: float = 1800.0,
) -> Callable[[], Agent]:
  """Returns a factory building a download agent with its own transcript and search results."""

  def create() -> Agent:
    results = SearchResults()
    return Agent(
      model=model,
      tools=[
        FileSearchTool(search_client, results),
        FileDownloadTool(download_client, results, download_location),
        WaitForDownloadTool(download_client, poll_interval=wait_poll_interval, timeout=wait_timeout),
        ListDirectoriesTool(file_system, library_path),
        ListFilesTool(file_system, library_path),
        LibraryDescriptionTool(file_system, library_path),
        MoveTool(file_system, library_path),
        CleanupTool(download_client, file_system, download_location),
      ],
      max_depth=max_depth,
      instructions=DOWNLOADER_INSTRUCTIONS,
      name="downloader",
    )

  return create
