import traceback
from contextlib import aclosing

from ..agents.agent import Agent
from ..agents.registry import AgentKind, AgentRegistry, CorrelationKey
from ..logs import get_logger, InfoContext
from ..messages import AgentResponse
from .format import format_response
from .protocol import ChatClient, ChatPrompt
from .task_queue import TaskQueue

DEFAULT_BUFFER_SIZE = 1000


class ChatMonitor(InfoContext):
  """
  Feeds inbound chat prompts to agents and sends their responses back.

  Each prompt becomes one unit of work on the task queue. Reading the prompt stream
  never waits for a unit of work to finish, and a failing unit of work never stops
  the stream or any other unit of work.
  """

  def __init__(
    self,
    registry: AgentRegistry,
    queue: TaskQueue,
    chat_client: ChatClient,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    kind: AgentKind = AgentKind.DOWNLOAD,
  ):
    self.registry = registry
    self.queue = queue
    self.chat_client = chat_client
    self.buffer_size = buffer_size
    self.kind = kind
    self.logger = get_logger("monitor")

  async def monitor(self) -> None:
    """
    Consume prompts until the stream ends, fails or the calling task is cancelled.

    A stream failure is logged and ends monitoring; reconnecting is up to the chat client.
    """
    with self.info("Monitoring chat prompts", "Chat prompt stream ended"):
      try:
        async with aclosing(self.chat_client.read_prompts(self.buffer_size)) as prompts:
          async for prompt in prompts:
            self.logger.debug(f"Received prompt {prompt.message_id} in chat {prompt.chat_id} from {prompt.sender}")
            await self.queue.queue_task(lambda prompt=prompt: self.agent_task(prompt))
      except Exception as e:
        self.logger.error(f"Chat prompt stream failed: {type(e).__name__}: {e}\n{traceback.format_exc()}")

  async def agent_task(self, prompt: ChatPrompt) -> None:
    """Run the prompt's agent and deliver every response. Failures are logged, never raised."""
    try:
      agent = self.registry.resolve(self.kind, CorrelationKey.for_reply(prompt))
      async with aclosing(agent.run(prompt.prompt)) as responses:
        async for response in responses:
          await self.deliver(prompt, response, agent)
    except Exception as e:
      self.logger.error(
        f"Agent task failed for prompt {prompt.message_id} in chat {prompt.chat_id}: {type(e).__name__}: {e}",
        exc_info=True,
      )

  async def deliver(self, prompt: ChatPrompt, response: AgentResponse, agent: Agent) -> None:
    try:
      message_id = await self.chat_client.send_response(prompt.chat_id, format_response(response), prompt.message_id)
      self.registry.associate(CorrelationKey.for_response(message_id, prompt), agent)
    except Exception as e:
      self.logger.error(f"Failed to deliver response to prompt {prompt.message_id}: {type(e).__name__}: {e}", exc_info=True)
