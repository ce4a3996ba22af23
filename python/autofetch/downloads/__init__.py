from .protocol import DownloadClient, DownloadItem, DownloadState, SearchClient, SearchResult

__all__ = ["DownloadClient", "DownloadItem", "DownloadState", "SearchClient", "SearchResult"]
