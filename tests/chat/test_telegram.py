import json

import httpx
import pytest

from autofetch.chat import ChatPrompt, TelegramChatClient, TelegramError

TOKEN = "123:abc"


def message(message_id: int, text: str = "hi", username: str = "alice", reply_to: int = None) -> dict:
  body = {
    "message_id": message_id,
    "chat": {"id": 5},
    "from": {"id": 77, "username": username},
    "text": text,
  }
  if reply_to is not None:
    body["reply_to_message"] = {"message_id": reply_to}
  return body


class FakeBotApi:
  """Serves scripted getUpdates batches and answers sendMessage with increasing ids."""

  def __init__(self, batches: list[list[dict]]):
    self.batches = list(batches)
    self.requests: list[tuple[str, dict]] = []
    self.next_message_id = 900

  def handler(self, request: httpx.Request) -> httpx.Response:
    method = request.url.path.rsplit("/", 1)[-1]
    assert request.url.path.startswith(f"/bot{TOKEN}/")

    if method == "getUpdates":
      self.requests.append((method, dict(request.url.params)))
      updates = self.batches.pop(0) if self.batches else []
      return httpx.Response(200, json={"ok": True, "result": updates})

    if method == "sendMessage":
      payload = json.loads(request.content)
      self.requests.append((method, payload))
      if payload["chat_id"] == 0:
        return httpx.Response(400, json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"})
      self.next_message_id += 1
      return httpx.Response(200, json={"ok": True, "result": {"message_id": self.next_message_id}})

    return httpx.Response(404, json={"ok": False, "error_code": 404, "description": "Not Found"})


def make_client(api: FakeBotApi, **kwargs) -> TelegramChatClient:
  http_client = httpx.AsyncClient(transport=httpx.MockTransport(api.handler))
  return TelegramChatClient(TOKEN, http_client=http_client, **kwargs)


async def take(client: TelegramChatClient, count: int, buffer_size: int = 1000) -> list[ChatPrompt]:
  prompts = []
  stream = client.read_prompts(buffer_size)
  async for prompt in stream:
    prompts.append(prompt)
    if len(prompts) == count:
      break
  await stream.aclose()
  return prompts


class TestReadPrompts:
  @pytest.mark.asyncio
  async def test_messages_become_prompts(self):
    api = FakeBotApi([[{"update_id": 1, "message": message(10, "find a film", reply_to=4)}]])
    client = make_client(api)

    prompts = await take(client, 1)

    assert prompts == [ChatPrompt(chat_id=5, message_id=10, sender="alice", prompt="find a film", reply_to_message_id=4)]

  @pytest.mark.asyncio
  async def test_offset_advances_past_seen_updates(self):
    api = FakeBotApi(
      [
        [{"update_id": 1, "message": message(10)}, {"update_id": 2, "message": message(11)}],
        [{"update_id": 3, "message": message(12)}],
      ]
    )
    client = make_client(api)

    prompts = await take(client, 3, buffer_size=5)

    assert [p.message_id for p in prompts] == [10, 11, 12]
    first, second = api.requests[0][1], api.requests[1][1]
    assert "offset" not in first
    assert first["limit"] == "5"
    assert second["offset"] == "3"

  @pytest.mark.asyncio
  async def test_poll_size_is_capped(self):
    api = FakeBotApi([[{"update_id": 1, "message": message(10)}]])
    client = make_client(api)

    await take(client, 1, buffer_size=1000)

    assert api.requests[0][1]["limit"] == "100"

  @pytest.mark.asyncio
  async def test_unauthorized_and_non_text_messages_are_skipped(self):
    api = FakeBotApi(
      [
        [
          {"update_id": 1, "message": message(10, username="mallory")},
          {"update_id": 2, "message": {"message_id": 11, "chat": {"id": 5}, "from": {"username": "alice"}}},
          {"update_id": 3, "edited_message": message(12)},
          {"update_id": 4, "message": message(13, username="alice")},
        ]
      ]
    )
    client = make_client(api, allowed_usernames=["@alice"])

    prompts = await take(client, 1)

    assert [p.message_id for p in prompts] == [13]

  @pytest.mark.asyncio
  async def test_api_error_ends_stream(self):
    def handler(request: httpx.Request) -> httpx.Response:
      return httpx.Response(401, json={"ok": False, "error_code": 401, "description": "Unauthorized"})

    client = TelegramChatClient(TOKEN, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(TelegramError, match="Unauthorized"):
      await take(client, 1)


class TestPollingRetries:
  @pytest.mark.asyncio
  async def test_timeout_is_retried(self):
    """A poll that times out is retried and the stream keeps going"""
    api = FakeBotApi([[{"update_id": 1, "message": message(10)}]])
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
      attempts.append(request)
      if len(attempts) == 1:
        raise httpx.ReadTimeout("timed out", request=request)
      return api.handler(request)

    client = TelegramChatClient(
      TOKEN, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), retry_delay=0
    )

    prompts = await take(client, 1)

    assert [p.message_id for p in prompts] == [10]
    assert len(attempts) == 2

  @pytest.mark.asyncio
  async def test_gateway_error_page_is_retried(self):
    """A non JSON error body from a proxy does not end the stream"""
    api = FakeBotApi([[{"update_id": 1, "message": message(10)}]])
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
      attempts.append(request)
      if len(attempts) <= 2:
        return httpx.Response(502, text="<html>Bad Gateway</html>")
      return api.handler(request)

    client = TelegramChatClient(
      TOKEN, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), retry_delay=0
    )

    prompts = await take(client, 1)

    assert [p.message_id for p in prompts] == [10]
    assert len(attempts) == 3

  @pytest.mark.asyncio
  async def test_api_errors_other_than_bad_token_are_retried(self):
    api = FakeBotApi([[{"update_id": 1, "message": message(10)}]])
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
      attempts.append(request)
      if len(attempts) == 1:
        return httpx.Response(429, json={"ok": False, "error_code": 429, "description": "Too Many Requests"})
      return api.handler(request)

    client = TelegramChatClient(
      TOKEN, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), retry_delay=0
    )

    assert [p.message_id for p in await take(client, 1)] == [10]

  @pytest.mark.asyncio
  async def test_unknown_token_is_not_retried(self):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
      attempts.append(request)
      return httpx.Response(404, json={"ok": False, "error_code": 404, "description": "Not Found"})

    client = TelegramChatClient(
      TOKEN, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), retry_delay=0
    )

    with pytest.raises(TelegramError):
      await take(client, 1)

    assert len(attempts) == 1

  @pytest.mark.asyncio
  async def test_backoff_grows_and_is_capped(self, monkeypatch):
    delays = []

    async def sleep(seconds):
      delays.append(seconds)

    monkeypatch.setattr("autofetch.chat.telegram.asyncio.sleep", sleep)
    api = FakeBotApi([[{"update_id": 1, "message": message(10)}]])
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
      attempts.append(request)
      if len(attempts) <= 5:
        raise httpx.ConnectError("connection reset", request=request)
      return api.handler(request)

    client = TelegramChatClient(
      TOKEN,
      http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
      retry_delay=1.0,
      max_retry_delay=5.0,
    )

    await take(client, 1)

    assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]


class TestSendResponse:
  @pytest.mark.asyncio
  async def test_response_is_sent_as_html_reply(self):
    api = FakeBotApi([])
    client = make_client(api)

    message_id = await client.send_response(5, "<b>done</b>", reply_to_message_id=10)

    assert message_id == 901
    method, payload = api.requests[0]
    assert method == "sendMessage"
    assert payload == {
      "chat_id": 5,
      "text": "<b>done</b>",
      "parse_mode": "HTML",
      "reply_parameters": {"message_id": 10, "allow_sending_without_reply": True},
    }

  @pytest.mark.asyncio
  async def test_send_without_reply(self):
    api = FakeBotApi([])
    client = make_client(api)

    await client.send_response(5, "hello")

    assert "reply_parameters" not in api.requests[0][1]

  @pytest.mark.asyncio
  async def test_send_failure_raises(self):
    client = make_client(FakeBotApi([]))

    with pytest.raises(TelegramError) as error:
      await client.send_response(0, "hello")

    assert error.value.error_code == 400
    assert error.value.method == "sendMessage"
