from .tool import Tool
from .protocol import InvokableTool
from .library import LibraryDescriptionTool, ListDirectoriesTool, ListFilesTool, MoveTool
from .downloads import CleanupTool, FileDownloadTool, FileSearchTool, SearchResults, WaitForDownloadTool

__all__ = [
  "Tool",
  "InvokableTool",
  "LibraryDescriptionTool",
  "ListDirectoriesTool",
  "ListFilesTool",
  "MoveTool",
  "CleanupTool",
  "FileDownloadTool",
  "FileSearchTool",
  "SearchResults",
  "WaitForDownloadTool",
]
