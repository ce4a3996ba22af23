"""
Configuration for autofetch, read from the environment.

Environment Variables:
- AUTOFETCH_SSH_HOST: Host of the server holding the library (required to run)
- AUTOFETCH_SSH_PORT: SSH port (default: 22)
- AUTOFETCH_SSH_USERNAME: SSH user
- AUTOFETCH_SSH_KEY_FILE: Private key file; when neither it nor a password is set the
  usual key locations and the SSH agent are tried
- AUTOFETCH_SSH_PASSWORD: SSH password
- AUTOFETCH_SSH_TIMEOUT: Connect and command timeout in seconds (default: 30)
- AUTOFETCH_LIBRARY_PATH: Root of the library on the server (default: /library)
- AUTOFETCH_DOWNLOAD_LOCATION: Where downloads are saved on the server, inside the library so
  finished files can be moved into place (default: /library/downloads)
- AUTOFETCH_TELEGRAM_BOT_TOKEN: Telegram bot token
- AUTOFETCH_TELEGRAM_ALLOWED_USERNAMES: Comma separated usernames allowed to talk to the bot
- AUTOFETCH_MODEL: Completion model name (default: gpt-4o-mini)
- AUTOFETCH_OPENAI_API_KEY: API key for the completion endpoint
- AUTOFETCH_OPENAI_BASE_URL: Base URL of an OpenAI compatible endpoint
- AUTOFETCH_MAX_DEPTH: Maximum tool call rounds per agent run (default: 10)
- AUTOFETCH_AGENT_TTL_DAYS: Days a reply keeps its conversation alive (default: 60)
- AUTOFETCH_WORKERS: Prompts handled concurrently (default: 10)
- AUTOFETCH_PROMPT_BUFFER_SIZE: Prompts read from the chat per batch (default: 1000)
- AUTOFETCH_WAIT_POLL_SECONDS: Interval between download status checks (default: 5)
- AUTOFETCH_WAIT_TIMEOUT_SECONDS: How long one wait_for_download call waits (default: 1800)

Logging is configured separately through AUTOFETCH_LOG_LEVELS and AUTOFETCH_LOGGING,
see autofetch.logs.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .tools.library import is_within

PREFIX = "AUTOFETCH_"


def _get(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
  value = env.get(PREFIX + name)
  if value is None or value.strip() == "":
    return default
  return value.strip()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
  value = _get(env, name)
  if value is None:
    return default
  try:
    return int(value)
  except ValueError:
    raise ValueError(f"{PREFIX}{name} must be an integer, got '{value}'")


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
  value = _get(env, name)
  if value is None:
    return default
  try:
    return float(value)
  except ValueError:
    raise ValueError(f"{PREFIX}{name} must be a number, got '{value}'")


def _get_list(env: Mapping[str, str], name: str) -> list[str]:
  value = _get(env, name)
  if value is None:
    return []
  return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
  ssh_host: Optional[str] = None
  ssh_port: int = 22
  ssh_username: Optional[str] = None
  ssh_key_file: Optional[str] = None
  ssh_password: Optional[str] = None
  ssh_timeout: float = 30.0

  library_path: str = "/library"
  download_location: str = "/library/downloads"

  telegram_bot_token: Optional[str] = None
  telegram_allowed_usernames: list[str] = field(default_factory=list)

  model: str = "gpt-4o-mini"
  openai_api_key: Optional[str] = None
  openai_base_url: Optional[str] = None

  max_depth: int = 10
  agent_ttl_days: float = 60.0
  workers: int = 10
  prompt_buffer_size: int = 1000
  wait_poll_seconds: float = 5.0
  wait_timeout_seconds: float = 1800.0

  @property
  def agent_ttl_seconds(self) -> float:
    return self.agent_ttl_days * 24 * 60 * 60

  @classmethod
  def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
    env = os.environ if env is None else env
    return cls(
      ssh_host=_get(env, "SSH_HOST"),
      ssh_port=_get_int(env, "SSH_PORT", 22),
      ssh_username=_get(env, "SSH_USERNAME"),
      ssh_key_file=_get(env, "SSH_KEY_FILE"),
      ssh_password=_get(env, "SSH_PASSWORD"),
      ssh_timeout=_get_float(env, "SSH_TIMEOUT", 30.0),
      library_path=_get(env, "LIBRARY_PATH", "/library"),
      download_location=_get(env, "DOWNLOAD_LOCATION", "/library/downloads"),
      telegram_bot_token=_get(env, "TELEGRAM_BOT_TOKEN"),
      telegram_allowed_usernames=_get_list(env, "TELEGRAM_ALLOWED_USERNAMES"),
      model=_get(env, "MODEL", "gpt-4o-mini"),
      openai_api_key=_get(env, "OPENAI_API_KEY"),
      openai_base_url=_get(env, "OPENAI_BASE_URL"),
      max_depth=_get_int(env, "MAX_DEPTH", 10),
      agent_ttl_days=_get_float(env, "AGENT_TTL_DAYS", 60.0),
      workers=_get_int(env, "WORKERS", 10),
      prompt_buffer_size=_get_int(env, "PROMPT_BUFFER_SIZE", 1000),
      wait_poll_seconds=_get_float(env, "WAIT_POLL_SECONDS", 5.0),
      wait_timeout_seconds=_get_float(env, "WAIT_TIMEOUT_SECONDS", 1800.0),
    )

  def validate(self) -> None:
    """Check the settings needed to run the bot are present."""
    missing = [
      PREFIX + name
      for name, value in (("SSH_HOST", self.ssh_host), ("TELEGRAM_BOT_TOKEN", self.telegram_bot_token))
      if not value
    ]
    if missing:
      raise ValueError(f"Missing required configuration: {', '.join(missing)}")
    if self.max_depth < 1:
      raise ValueError(f"{PREFIX}MAX_DEPTH must be at least 1, got {self.max_depth}")
    if self.workers < 1:
      raise ValueError(f"{PREFIX}WORKERS must be at least 1, got {self.workers}")
    self.validate_download_location()

  def validate_download_location(self) -> None:
    """Downloads have to land inside the library, the move tool only relocates paths within it."""
    if not is_within(self.download_location, self.library_path, allow_root=False):
      raise ValueError(
        f"{PREFIX}DOWNLOAD_LOCATION must be inside {PREFIX}LIBRARY_PATH, got '{self.download_location}' "
        f"outside '{self.library_path}'"
      )
