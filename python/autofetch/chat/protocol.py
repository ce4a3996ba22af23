from dataclasses import dataclass
from typing import AsyncIterator, Optional, Protocol


@dataclass(frozen=True)
class ChatPrompt:
  chat_id: int
  message_id: int
  sender: str
  prompt: str
  reply_to_message_id: Optional[int] = None


class ChatClient(Protocol):
  def read_prompts(self, buffer_size: int) -> AsyncIterator[ChatPrompt]: ...

  async def send_response(self, chat_id: int, text: str, reply_to_message_id: Optional[int] = None) -> int: ...
