from .agents import Agent, AgentKind, AgentRegistry, CorrelationKey, download_agent_factory
from .app import App, create_app
from .chat import ChatMonitor, ChatPrompt, TaskQueue, TelegramChatClient
from .config import Settings
from .errors import (
  AutofetchError,
  DownloadNotFound,
  InvalidParameters,
  PathAlreadyExists,
  PathNotFound,
  PathOutsideLibrary,
  RemoteCommandFailed,
  UnsupportedAgentKind,
)
from .filesystem import ParamikoShellClient, SshFileSystemClient
from .logs import get_logger, set_log_level, set_log_levels
from .messages import AgentResponse, StopReason, ToolCallRecord
from .models import Completion, OpenAIModel
from .tools import Tool

__all__ = [
  # from .agents
  "Agent",
  "AgentKind",
  "AgentRegistry",
  "CorrelationKey",
  "download_agent_factory",
  # from .app
  "App",
  "create_app",
  # from .chat
  "ChatMonitor",
  "ChatPrompt",
  "TaskQueue",
  "TelegramChatClient",
  # from .config
  "Settings",
  # from .errors
  "AutofetchError",
  "DownloadNotFound",
  "InvalidParameters",
  "PathAlreadyExists",
  "PathNotFound",
  "PathOutsideLibrary",
  "RemoteCommandFailed",
  "UnsupportedAgentKind",
  # from .filesystem
  "ParamikoShellClient",
  "SshFileSystemClient",
  # from .logs
  "get_logger",
  "set_log_level",
  "set_log_levels",
  # from .messages
  "AgentResponse",
  "StopReason",
  "ToolCallRecord",
  # from .models
  "Completion",
  "OpenAIModel",
  # from .tools
  "Tool",
]
