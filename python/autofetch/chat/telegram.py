"""
Chat client for the Telegram Bot API.

Prompts are read by long polling `getUpdates`; responses are sent with
`sendMessage` in HTML parse mode as replies to the prompt that produced them.
"""

import asyncio
from typing import AsyncIterator, Iterable, Optional

import httpx

from ..logs import get_logger
from .protocol import ChatPrompt

TELEGRAM_API_URL = "https://api.telegram.org"
MAX_UPDATES_PER_POLL = 100
DEFAULT_POLL_TIMEOUT = 30

# Unauthorized and Not Found mean a bad token, retrying will not help
FATAL_ERROR_CODES = (401, 404)


class TelegramError(RuntimeError):
  def __init__(self, method: str, description: str, error_code: Optional[int] = None):
    self.method = method
    self.description = description
    self.error_code = error_code
    super().__init__(f"Telegram {method} failed ({error_code}): {description}")


class TelegramChatClient:
  def __init__(
    self,
    token: str,
    allowed_usernames: Optional[Iterable[str]] = None,
    poll_timeout: int = DEFAULT_POLL_TIMEOUT,
    base_url: str = TELEGRAM_API_URL,
    http_client: Optional[httpx.AsyncClient] = None,
    retry_delay: float = 1.0,
    max_retry_delay: float = 60.0,
  ):
    """
    :param token: Bot token
    :param allowed_usernames: Only prompts from these usernames are read, everyone if empty
    :param poll_timeout: Seconds a single getUpdates call may wait for new messages
    :param base_url: Bot API server
    :param http_client: Client to use instead of a new one
    :param retry_delay: Initial backoff after a failed poll, in seconds, doubled per consecutive failure
    :param max_retry_delay: Maximum backoff after a failed poll, in seconds
    """
    self.allowed_usernames = {name.lstrip("@") for name in allowed_usernames or []}
    self.poll_timeout = poll_timeout
    self.retry_delay = retry_delay
    self.max_retry_delay = max_retry_delay
    self.logger = get_logger("chat")
    self._base_url = f"{base_url.rstrip('/')}/bot{token}"
    self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=poll_timeout + 10.0))
    self._offset: Optional[int] = None

  async def read_prompts(self, buffer_size: int) -> AsyncIterator[ChatPrompt]:
    """
    Yield text messages as prompts, forever. buffer_size bounds each poll.

    A failed poll is retried with exponential backoff. Only errors that retrying
    cannot fix, such as a revoked token, end the stream.
    """
    limit = max(1, min(buffer_size, MAX_UPDATES_PER_POLL))
    failures = 0
    while True:
      params = {"timeout": self.poll_timeout, "limit": limit, "allowed_updates": '["message"]'}
      if self._offset is not None:
        params["offset"] = self._offset

      try:
        updates = await self._call("getUpdates", params=params)
      except (httpx.HTTPError, ValueError, TelegramError) as e:
        if isinstance(e, TelegramError) and e.error_code in FATAL_ERROR_CODES:
          raise
        backoff = min(self.retry_delay * (2**failures), self.max_retry_delay)
        failures += 1
        self.logger.warning(
          f"Polling for updates failed (attempt {failures}): {type(e).__name__}: {e}, retrying in {backoff:.1f}s"
        )
        await asyncio.sleep(backoff)
        continue

      failures = 0
      for update in updates:
        self._offset = update["update_id"] + 1
        prompt = self._to_prompt(update.get("message"))
        if prompt is not None:
          yield prompt

  async def send_response(self, chat_id: int, text: str, reply_to_message_id: Optional[int] = None) -> int:
    payload = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
    if reply_to_message_id is not None:
      payload["reply_parameters"] = {"message_id": reply_to_message_id, "allow_sending_without_reply": True}

    message = await self._call("sendMessage", json=payload)
    return message["message_id"]

  async def close(self) -> None:
    await self._http.aclose()

  def _to_prompt(self, message: Optional[dict]) -> Optional[ChatPrompt]:
    if not message or not message.get("text"):
      return None

    sender = message.get("from") or {}
    username = sender.get("username") or str(sender.get("id", ""))
    if self.allowed_usernames and username not in self.allowed_usernames:
      self.logger.warning(f"Ignoring message {message['message_id']} from unauthorized user '{username}'")
      return None

    reply_to = message.get("reply_to_message") or {}
    return ChatPrompt(
      chat_id=message["chat"]["id"],
      message_id=message["message_id"],
      sender=username,
      prompt=message["text"],
      reply_to_message_id=reply_to.get("message_id"),
    )

  async def _call(self, method: str, **kwargs):
    response = await self._http.post(f"{self._base_url}/{method}", **kwargs)
    body = response.json()
    if not body.get("ok"):
      raise TelegramError(method, body.get("description", response.text), body.get("error_code"))
    return body["result"]
