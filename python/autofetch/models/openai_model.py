"""
Completion model backed by any OpenAI compatible chat completions endpoint.
"""

from typing import Optional

import httpx
from openai import AsyncOpenAI

from ..logs import get_logger
from ..messages import ConversationMessage, FunctionToolCall, StopReason, ToolCall
from .protocol import Completion

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 120.0
DEFAULT_WRITE_TIMEOUT = 30.0
DEFAULT_POOL_TIMEOUT = 10.0


def _create_timeout() -> httpx.Timeout:
  return httpx.Timeout(
    connect=DEFAULT_CONNECT_TIMEOUT,
    read=DEFAULT_READ_TIMEOUT,
    write=DEFAULT_WRITE_TIMEOUT,
    pool=DEFAULT_POOL_TIMEOUT,
  )


class OpenAIModel:
  def __init__(
    self,
    name: str,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    client: Optional[AsyncOpenAI] = None,
    **kwargs,
  ):
    """
    :param name: Model name sent with every request
    :param api_key: API key, falls back to the SDK's own environment lookup
    :param base_url: Endpoint override for OpenAI compatible servers
    :param client: Pre-built client, mostly for tests
    :param kwargs: Extra parameters passed to every completion request
    """
    self.name = name
    self.logger = get_logger("model")
    self.request_kwargs = kwargs
    self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=_create_timeout())

  async def complete(self, messages: list[ConversationMessage], tools: list[dict]) -> Completion:
    payload = [message.to_dict() for message in messages]
    self.logger.debug(f"Requesting completion from {self.name}: messages={len(payload)}, tools={len(tools)}")

    kwargs = dict(self.request_kwargs)
    if tools:
      kwargs["tools"] = tools

    response = await self._client.chat.completions.create(model=self.name, messages=payload, **kwargs)
    if not response.choices:
      raise RuntimeError(f"Model {self.name} returned no choices")

    choice = response.choices[0]
    message = choice.message
    tool_calls = [
      ToolCall(
        id=tool_call.id,
        function=FunctionToolCall(name=tool_call.function.name, arguments=tool_call.function.arguments or ""),
      )
      for tool_call in (message.tool_calls or [])
    ]

    completion = Completion(
      content=message.content or "",
      stop_reason=StopReason.parse(choice.finish_reason),
      tool_calls=tool_calls,
    )
    self.logger.debug(
      f"Completion from {self.name}: stop_reason={completion.stop_reason.value}, tool_calls={len(tool_calls)}"
    )
    return completion
