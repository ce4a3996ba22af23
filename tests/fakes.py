"""
Shared fakes for testing autofetch.

Each fake implements one of the package protocols in memory and records how it
was called, so tests can assert on the calls without a server, a chat service
or a model endpoint.

Usage:
    model = FakeModel([tool_calls_completion(("list_directories", "{}")), text_completion("Done")])
    shell = FakeShellClient({"find /library -type f": "/library/a/1.mkv\n"})
"""

import asyncio
from typing import AsyncIterator, Optional

from autofetch.chat.protocol import ChatPrompt
from autofetch.downloads.protocol import DownloadItem, DownloadState, SearchResult
from autofetch.filesystem.protocol import CommandResult
from autofetch.messages import FunctionToolCall, StopReason, ToolCall
from autofetch.models.protocol import Completion


def text_completion(content: str, stop_reason: StopReason = StopReason.END_TURN) -> Completion:
  return Completion(content=content, stop_reason=stop_reason)


def tool_calls_completion(*calls: tuple[str, str], content: str = "") -> Completion:
  """A completion requesting the given (name, arguments) tool calls, with ids call_0, call_1, ..."""
  return Completion(
    content=content,
    stop_reason=StopReason.TOOL_CALLS,
    tool_calls=[
      ToolCall(id=f"call_{i}", function=FunctionToolCall(name=name, arguments=arguments))
      for i, (name, arguments) in enumerate(calls)
    ],
  )


class FakeModel:
  """
  Returns scripted completions in order and records the transcript of each request.

  A scripted item that is an exception is raised instead of returned. When the
  script runs out, `default` is returned.
  """

  def __init__(self, completions: Optional[list] = None, default: Optional[Completion] = None):
    self.completions = list(completions or [])
    self.default = default or text_completion("Done")
    self.requests: list[list[dict]] = []
    self.tools: list[list[dict]] = []

  @property
  def call_count(self) -> int:
    return len(self.requests)

  async def complete(self, messages, tools) -> Completion:
    self.requests.append([message.to_dict() for message in messages])
    self.tools.append(tools)
    await asyncio.sleep(0)

    if not self.completions:
      return self.default
    item = self.completions.pop(0)
    if isinstance(item, Exception):
      raise item
    return item


class FakeShellClient:
  """
  ShellClient answering commands from a table of outputs.

  `outputs` maps a command to either its stdout or a CommandResult. Existence
  checks answer from `existing` (exact paths) unless the check is in `outputs`.
  Any other command succeeds with empty output.
  """

  def __init__(self, outputs: Optional[dict] = None, existing: Optional[dict[str, str]] = None):
    self.outputs = dict(outputs or {})
    # path -> "d" or "f"
    self.existing = dict(existing or {})
    self.commands: list[str] = []
    self.events: list[str] = []
    self.connected = False

  @property
  def is_connected(self) -> bool:
    return self.connected

  def connect(self) -> None:
    self.connected = True
    self.events.append("connect")

  def disconnect(self) -> None:
    self.connected = False
    self.events.append("disconnect")

  def run_command(self, command: str) -> CommandResult:
    assert self.connected, f"Command run without a connection: {command}"
    self.commands.append(command)
    self.events.append(command)

    if command in self.outputs:
      output = self.outputs[command]
      return output if isinstance(output, CommandResult) else CommandResult(output=output)

    if command.startswith("[ -"):
      return CommandResult(output=("EXISTS" if self._exists(command) else "NOT_EXISTS") + "\n")
    return CommandResult(output="")

  def _exists(self, command: str) -> bool:
    # [ -d '/library/a' ] && echo "EXISTS" || echo "NOT_EXISTS"
    descriptor = command[3]
    quoted = command[5 : command.index(" ]")]
    path = quoted[1:-1] if quoted.startswith("'") else quoted
    kind = self.existing.get(path)
    if kind is None:
      return False
    return descriptor == "e" or descriptor == kind


class FakeFileSystemClient:
  """FileSystemClient recording calls; a method listed in `failures` raises the given error."""

  def __init__(self, description: Optional[dict] = None, failures: Optional[dict[str, Exception]] = None):
    self.description = description or {}
    self.failures = failures or {}
    self.calls: list[tuple] = []

  async def _call(self, name: str, *args):
    self.calls.append((name, *args))
    if name in self.failures:
      raise self.failures[name]

  async def describe_directory(self, path: str) -> dict[str, list[str]]:
    await self._call("describe_directory", path)
    return self.description

  async def list_directories_in(self, path: str) -> list[str]:
    await self._call("list_directories_in", path)
    return sorted(self.description)

  async def list_files_in(self, path: str) -> list[str]:
    await self._call("list_files_in", path)
    return [f"{path}/{name}" for name in self.description.get(path, [])]

  async def move(self, source_path: str, destination_path: str) -> None:
    await self._call("move", source_path, destination_path)

  async def remove_directory(self, path: str) -> None:
    await self._call("remove_directory", path)

  async def remove_file(self, path: str) -> None:
    await self._call("remove_file", path)


class FakeSearchClient:
  def __init__(self, results: Optional[list[SearchResult]] = None):
    self.results = results or []
    self.queries: list[str] = []

  async def search(self, query: str) -> list[SearchResult]:
    self.queries.append(query)
    return list(self.results)


class FakeDownloadClient:
  """
  DownloadClient whose downloads progress through scripted states.

  `states` maps a download id to the states reported by consecutive
  get_download calls; the last state repeats.
  """

  def __init__(self, states: Optional[dict[int, list[DownloadState]]] = None, cleanup_error: Optional[Exception] = None):
    self.states = {download_id: list(items) for download_id, items in (states or {}).items()}
    self.cleanup_error = cleanup_error
    self.downloads: list[tuple[str, str, int]] = []
    self.cleaned: list[int] = []

  async def download(self, link: str, save_path: str, download_id: int) -> None:
    self.downloads.append((link, save_path, download_id))
    self.states.setdefault(download_id, [DownloadState.QUEUED])

  async def get_download(self, download_id: int) -> Optional[DownloadItem]:
    states = self.states.get(download_id)
    if not states:
      return None
    state = states.pop(0) if len(states) > 1 else states[0]
    return DownloadItem(
      id=download_id,
      state=state,
      save_path=f"/downloads/{download_id}",
      progress=1.0 if state == DownloadState.COMPLETED else 0.5,
      files=[f"/downloads/{download_id}/file.mkv"] if state == DownloadState.COMPLETED else [],
    )

  async def cleanup(self, download_id: int) -> None:
    self.cleaned.append(download_id)
    if self.cleanup_error is not None:
      raise self.cleanup_error


class FakeChatClient:
  """
  ChatClient yielding scripted prompts, then either ending or raising `stream_error`.

  Sent responses are recorded as (chat_id, text, reply_to_message_id) and get
  increasing message ids starting at `first_message_id`.
  """

  def __init__(
    self,
    prompts: Optional[list[ChatPrompt]] = None,
    stream_error: Optional[Exception] = None,
    send_error: Optional[Exception] = None,
    first_message_id: int = 1000,
  ):
    self.prompts = list(prompts or [])
    self.stream_error = stream_error
    self.send_error = send_error
    self.sent: list[tuple[int, str, Optional[int]]] = []
    self.buffer_sizes: list[int] = []
    self._next_message_id = first_message_id

  async def read_prompts(self, buffer_size: int) -> AsyncIterator[ChatPrompt]:
    self.buffer_sizes.append(buffer_size)
    for prompt in self.prompts:
      yield prompt
    if self.stream_error is not None:
      raise self.stream_error

  async def send_response(self, chat_id: int, text: str, reply_to_message_id: Optional[int] = None) -> int:
    if self.send_error is not None:
      raise self.send_error
    message_id = self._next_message_id
    self._next_message_id += 1
    self.sent.append((chat_id, text, reply_to_message_id))
    return message_id


class FakeClock:
  def __init__(self, now: float = 1_000_000.0):
    self.now = now

  def __call__(self) -> float:
    return self.now

  def advance(self, seconds: float) -> None:
    self.now += seconds


def prompt(message_id: int, text: str = "hello", sender: str = "alice", reply_to: Optional[int] = None, chat_id: int = 1):
  return ChatPrompt(chat_id=chat_id, message_id=message_id, sender=sender, prompt=text, reply_to_message_id=reply_to)
