from typing import Optional

from .agents import AgentKind, AgentRegistry, download_agent_factory
from .chat import ChatClient, ChatMonitor, QueueConfig, TaskQueue, TelegramChatClient
from .config import Settings
from .downloads import DownloadClient, SearchClient
from .filesystem import ParamikoShellClient, ShellClient, SshFileSystemClient
from .logs import get_logger
from .models import CompletionModel, OpenAIModel

logger = get_logger("app")


class App:
  def __init__(self, monitor: ChatMonitor, queue: TaskQueue):
    self.monitor = monitor
    self.queue = queue

  async def run(self) -> None:
    """Handle chat prompts until the prompt stream ends or this task is cancelled."""
    await self.queue.start()
    try:
      await self.monitor.monitor()
    finally:
      await self.queue.stop()


def create_app(
  settings: Settings,
  download_client: DownloadClient,
  search_client: SearchClient,
  model: Optional[CompletionModel] = None,
  shell_client: Optional[ShellClient] = None,
  chat_client: Optional[ChatClient] = None,
) -> App:
  """
  Wire the components together.

  Collaborators that are not passed in are built from settings: an SSH shell,
  the Telegram chat client and an OpenAI compatible model.

  Raises:
    ValueError: A required setting is missing, or downloads would land outside the library
  """
  settings.validate_download_location()

  if shell_client is None:
    if not settings.ssh_host:
      raise ValueError("Missing required configuration: AUTOFETCH_SSH_HOST")
    shell_client = ParamikoShellClient(
      host=settings.ssh_host,
      port=settings.ssh_port,
      username=settings.ssh_username,
      password=settings.ssh_password,
      key_filename=settings.ssh_key_file,
      timeout=settings.ssh_timeout,
    )

  if chat_client is None:
    if not settings.telegram_bot_token:
      raise ValueError("Missing required configuration: AUTOFETCH_TELEGRAM_BOT_TOKEN")
    chat_client = TelegramChatClient(settings.telegram_bot_token, allowed_usernames=settings.telegram_allowed_usernames)

  if model is None:
    model = OpenAIModel(settings.model, api_key=settings.openai_api_key, base_url=settings.openai_base_url)

  file_system = SshFileSystemClient(shell_client)
  registry = AgentRegistry(
    {
      AgentKind.DOWNLOAD: download_agent_factory(
        model=model,
        file_system=file_system,
        search_client=search_client,
        download_client=download_client,
        library_path=settings.library_path,
        download_location=settings.download_location,
        max_depth=settings.max_depth,
        wait_poll_interval=settings.wait_poll_seconds,
        wait_timeout=settings.wait_timeout_seconds,
      )
    },
    ttl=settings.agent_ttl_seconds,
  )
  queue = TaskQueue(QueueConfig(num_workers=settings.workers))
  monitor = ChatMonitor(registry, queue, chat_client, buffer_size=settings.prompt_buffer_size)

  logger.info(f"Created app: library='{settings.library_path}', downloads='{settings.download_location}'")
  return App(monitor, queue)
