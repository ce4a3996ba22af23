from dataclasses import dataclass, field
from typing import Protocol

from ..messages import ConversationMessage, StopReason, ToolCall


@dataclass
class Completion:
  content: str
  stop_reason: StopReason
  tool_calls: list[ToolCall] = field(default_factory=list)


class CompletionModel(Protocol):
  async def complete(self, messages: list[ConversationMessage], tools: list[dict]) -> Completion: ...
