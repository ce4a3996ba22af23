import html

from ..messages import AgentResponse

MAX_BLOCK_LENGTH = 1900


def utf16_length(text: str) -> int:
  return len(text.encode("utf-16-le")) // 2


def truncate(text: str, length: int = MAX_BLOCK_LENGTH) -> str:
  """Cut text to at most length UTF-16 code units, the unit Telegram counts message length in."""
  if utf16_length(text) <= length:
    return text
  # a surrogate pair split by the cut decodes to nothing and is dropped
  return text.encode("utf-16-le")[: length * 2].decode("utf-16-le", errors="ignore")


def sanitize(text: str) -> str:
  return html.escape(text, quote=False)


def format_response(response: AgentResponse, max_length: int = MAX_BLOCK_LENGTH) -> str:
  """
  Render a response as chat HTML.

  The content and the tool call summary are truncated independently before they
  are escaped, so markup in either can never leak into the message.
  """
  tool_summary = "\n".join(str(tool_call) for tool_call in response.tool_calls)
  stop_reason = f"StopReason={response.stop_reason.value}"
  if response.depth_exhausted:
    stop_reason += " DepthExhausted=true"

  return (
    "<blockquote expandable>"
    f"{sanitize(truncate(response.content, max_length))}"
    "</blockquote>"
    "<blockquote expandable>"
    f"<pre><code>{stop_reason}</code>\n\n"
    f'<code class="language-json">{sanitize(truncate(tool_summary, max_length))}</code></pre>'
    "</blockquote>"
  )
