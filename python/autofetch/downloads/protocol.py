from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol


@dataclass
class SearchResult:
  id: int
  title: str
  link: str
  size: Optional[int] = None
  seeders: Optional[int] = None
  category: Optional[str] = None

  def to_dict(self) -> dict:
    return {
      "id": self.id,
      "title": self.title,
      "size": self.size,
      "seeders": self.seeders,
      "category": self.category,
    }


class DownloadState(Enum):
  QUEUED = "queued"
  DOWNLOADING = "downloading"
  COMPLETED = "completed"
  FAILED = "failed"


@dataclass
class DownloadItem:
  id: int
  state: DownloadState
  save_path: str
  progress: float = 0.0
  files: list[str] = field(default_factory=list)

  @property
  def finished(self) -> bool:
    return self.state in (DownloadState.COMPLETED, DownloadState.FAILED)

  def to_dict(self) -> dict:
    return {
      "id": self.id,
      "state": self.state.value,
      "save_path": self.save_path,
      "progress": self.progress,
      "files": list(self.files),
    }


class SearchClient(Protocol):
  async def search(self, query: str) -> list[SearchResult]: ...


class DownloadClient(Protocol):
  async def download(self, link: str, save_path: str, download_id: int) -> None: ...

  async def get_download(self, download_id: int) -> Optional[DownloadItem]: ...

  async def cleanup(self, download_id: int) -> None: ...
