from .protocol import ChatClient, ChatPrompt
from .format import format_response
from .task_queue import QueueConfig, QueueStats, TaskQueue
from .telegram import TelegramChatClient, TelegramError
from .monitor import ChatMonitor

__all__ = [
  "ChatClient",
  "ChatPrompt",
  "format_response",
  "QueueConfig",
  "QueueStats",
  "TaskQueue",
  "TelegramChatClient",
  "TelegramError",
  "ChatMonitor",
]
