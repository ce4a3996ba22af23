"""
Tools that find, start, wait for and clean up downloads.

Downloads are saved to `{download_location}/{download_id}`, where the id is the
id of the search result the download was started from.
"""

import asyncio
import time

from ..downloads.protocol import DownloadClient, SearchClient, SearchResult
from ..errors import DownloadNotFound, InvalidParameters
from ..filesystem.protocol import FileSystemClient
from .tool import Tool


class SearchResults(dict[int, SearchResult]):
  """Search results seen by one agent, shared by the search and download tools."""


def download_path(download_location: str, download_id: int) -> str:
  return f"{download_location.rstrip('/')}/{download_id}"


class FileSearchTool(Tool):
  def __init__(self, client: SearchClient, results: SearchResults):
    self.client = client
    self.results = results
    super().__init__(self.file_search)

  async def file_search(self, query: str) -> dict:
    """
    Searches for downloadable files matching a query.

    Each result has an id that can be passed to the file_download tool. Prefer results
    with more seeders and a reasonable size.

    Args:
      query (str): Search terms, e.g. a title and a year.
    """
    found = await self.client.search(query)
    for result in found:
      self.results[result.id] = result
    self.logger.info(f"Search for '{query}' returned {len(found)} results")
    return {"results": [result.to_dict() for result in found]}


class FileDownloadTool(Tool):
  def __init__(self, client: DownloadClient, results: SearchResults, download_location: str):
    self.client = client
    self.results = results
    self.download_location = download_location
    super().__init__(self.file_download)

  async def file_download(self, search_result_id: int) -> dict:
    """
    Starts downloading a search result.

    The returned download_id identifies the download in the wait_for_download and
    cleanup tools.

    Args:
      search_result_id (int): Id of a result returned by the file_search tool.
    """
    result = self.results.get(search_result_id)
    if result is None:
      raise InvalidParameters(
        f"Unknown search result id {search_result_id}. Use the file_search tool first.", self.name
      )

    save_path = download_path(self.download_location, result.id)
    await self.client.download(result.link, save_path, result.id)
    return {
      "status": "success",
      "message": "Download started",
      "download_id": result.id,
      "save_path": save_path,
    }


class WaitForDownloadTool(Tool):
  def __init__(self, client: DownloadClient, poll_interval: float = 5.0, timeout: float = 1800.0):
    self.client = client
    self.poll_interval = poll_interval
    self.timeout = timeout
    super().__init__(self.wait_for_download)

  async def wait_for_download(self, download_id: int) -> dict:
    """
    Waits until a download finishes and reports its final state and files.

    If the download is still running when the waiting time runs out, the current
    progress is reported instead and this tool can be called again.

    Args:
      download_id (int): Id returned by the file_download tool.
    """
    deadline = time.monotonic() + self.timeout
    while True:
      item = await self.client.get_download(download_id)
      if item is None:
        raise DownloadNotFound(download_id)

      if item.finished:
        return {"status": item.state.value, "download": item.to_dict()}

      if time.monotonic() >= deadline:
        self.logger.info(f"Stopped waiting for download {download_id} at {item.progress:.0%}")
        return {"status": "in_progress", "download": item.to_dict()}

      await asyncio.sleep(self.poll_interval)


class CleanupTool(Tool):
  def __init__(self, download_client: DownloadClient, file_system: FileSystemClient, download_location: str):
    self.download_client = download_client
    self.file_system = file_system
    self.download_location = download_location
    super().__init__(self.cleanup)

  async def cleanup(self, download_id: int) -> dict:
    """
    Removes everything that is left over in a download directory.

    It can also be used to cancel a download if the user requests it.

    Args:
      download_id (int): Id returned by the file_download tool.
    """
    errors = []

    try:
      await self.file_system.remove_directory(download_path(self.download_location, download_id))
    except Exception as e:
      self.logger.error(f"Failed to remove the directory of download {download_id}: {e}")
      errors.append(e)

    try:
      await self.download_client.cleanup(download_id)
    except Exception as e:
      self.logger.error(f"Failed to clean up download {download_id}: {e}")
      errors.append(e)

    if len(errors) == 1:
      raise errors[0]
    if errors:
      raise ExceptionGroup(f"Cleanup of download {download_id} failed", errors)

    return {
      "status": "success",
      "message": "Download leftovers removed successfully",
      "download_id": download_id,
    }
