import json

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ConversationRole(Enum):
  USER = "user"
  SYSTEM = "system"
  ASSISTANT = "assistant"
  TOOL = "tool"


class StopReason(Enum):
  """Why the completion model stopped generating."""

  END_TURN = "stop"
  TOOL_CALLS = "tool_calls"
  LENGTH = "length"
  CONTENT_FILTER = "content_filter"
  UNKNOWN = "unknown"

  @classmethod
  def parse(cls, value: Optional[str]) -> "StopReason":
    if value is None:
      return cls.UNKNOWN
    try:
      return cls(value)
    except ValueError:
      return cls.UNKNOWN


@dataclass
class FunctionToolCall:
  name: str
  arguments: str = field(default_factory=str)


@dataclass
class ToolCall:
  id: str
  function: FunctionToolCall
  type: str = "function"

  def to_dict(self) -> dict:
    return {
      "id": self.id,
      "type": self.type,
      "function": {"name": self.function.name, "arguments": self.function.arguments},
    }


@dataclass
class UserMessage:
  content: str = ""
  role: ConversationRole = ConversationRole.USER

  def to_dict(self) -> dict:
    return {"role": self.role.value, "content": self.content}


@dataclass
class SystemMessage:
  content: str = ""
  role: ConversationRole = ConversationRole.SYSTEM

  def to_dict(self) -> dict:
    return {"role": self.role.value, "content": self.content}


@dataclass
class AssistantMessage:
  content: str = ""
  tool_calls: list[ToolCall] = field(default_factory=list)
  role: ConversationRole = ConversationRole.ASSISTANT

  def to_dict(self) -> dict:
    message = {"role": self.role.value, "content": self.content}
    if self.tool_calls:
      message["tool_calls"] = [tool_call.to_dict() for tool_call in self.tool_calls]
    return message


@dataclass
class ToolCallResponseMessage:
  tool_call_id: str
  name: str
  content: str = ""
  role: ConversationRole = ConversationRole.TOOL

  def to_dict(self) -> dict:
    return {
      "role": self.role.value,
      "tool_call_id": self.tool_call_id,
      "name": self.name,
      "content": self.content,
    }


ConversationMessage = Union[UserMessage, SystemMessage, AssistantMessage, ToolCallResponseMessage]


@dataclass
class ToolCallRecord:
  """A tool call the agent made during one round, with what it observed."""

  name: str
  arguments: str
  result: str

  def __str__(self) -> str:
    return json.dumps({"name": self.name, "arguments": self.arguments, "result": self.result})


@dataclass
class AgentResponse:
  """The externally observable result of one round of the agent loop."""

  content: str
  stop_reason: StopReason
  tool_calls: list[ToolCallRecord] = field(default_factory=list)
  depth_exhausted: bool = False
