from contextlib import contextmanager

import os
import logging.config
from typing import Protocol

DEFAULT_LOG_FORMAT = os.getenv(
  "AUTOFETCH_LOG_FORMAT", "%(asctime)s %(log_color)s%(levelname)5s%(reset)s %(name)-12s %(message)s"
)
FORMAT = DEFAULT_LOG_FORMAT + (" [%(pathname)s:%(lineno)d]" if os.getenv("AUTOFETCH_LOG_SHOW_SOURCE", False) else "")

LOG_LEVELS = {}

LEVELS: dict[str, int] = {
  "critical": logging.CRITICAL,
  "error": logging.ERROR,
  "warning": logging.WARNING,
  "info": logging.INFO,
  "debug": logging.DEBUG,
}

# Loggers owned by autofetch. Each one falls back to the default level.
PACKAGE_LOGGERS = [
  "agent",
  "registry",
  "monitor",
  "queue",
  "tool",
  "filesystem",
  "ssh",
  "model",
  "chat",
  "app",
]

# Chatty third party loggers, kept at WARNING unless configured otherwise.
LIBRARY_LOGGERS = [
  "asyncio",
  "httpx",
  "httpcore",
  "openai",
  "paramiko",
  "paramiko.transport",
]


def get_logging_config() -> dict[str, int | bool | dict | str | None]:
  # Disable logging if explicitly set to 0; otherwise, assume it's enabled
  if os.environ.get("AUTOFETCH_LOGGING", "1") == "0":
    return {
      "version": 1,
    }

  global LOG_LEVELS
  if not LOG_LEVELS:
    set_log_levels(os.environ.get("AUTOFETCH_LOG_LEVELS"))
  return create_logging_config(LOG_LEVELS, FORMAT)


def set_log_level(module_name: str, level: str):
  """
  Set the log level for a specific module.
  """
  global LOG_LEVELS
  if not LOG_LEVELS:
    LOG_LEVELS = create_log_levels(None)
  LOG_LEVELS[module_name] = level.upper()


def set_log_levels(log_levels: str | None):
  global LOG_LEVELS
  LOG_LEVELS = create_log_levels(log_levels)


def get_log_levels() -> dict[str, str]:
  return dict(LOG_LEVELS)


def apply_log_levels():
  logging.config.dictConfig(get_logging_config())


def create_logging_config(levels: dict, log_format: str) -> dict[str, int | bool | dict | str | None]:
  loggers = {}
  for name in LIBRARY_LOGGERS:
    loggers[name] = {
      "handlers": ["default"],
      "level": levels.get(name, "WARNING"),
      "propagate": False,
    }
  for name in PACKAGE_LOGGERS:
    loggers[name] = {
      "handlers": ["default"],
      "level": levels.get(name) or levels.get("default"),
      "propagate": False,
    }

  return {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
      "default": {
        "()": "autofetch.logs.formatter.Formatter",
        "format": log_format,
        "log_colors": {
          "DEBUG": "blue",
          "INFO": "green",
          "WARNING": "yellow",
          "ERROR": "red",
          "CRITICAL": "bold_red",
        },
      },
    },
    "handlers": {
      "default": {
        "level": levels.get("default"),
        "formatter": "default",
        "class": "logging.StreamHandler",
      },
    },
    "loggers": loggers,
    "root": {"level": levels.get("default"), "handlers": ["default"]},
  }


def create_log_levels(log_levels: str | None) -> dict[str, str]:
  """
  Create log levels for python modules.

  The string is a comma separated list where a bare level sets the default
  and `name=level` pairs set the level of a single logger, e.g. "DEBUG,ssh=info".
  """
  result = {"default": "INFO"}
  if log_levels is not None:
    for level in log_levels.split(","):
      level = level.strip()
      if not level:
        continue
      key_value = level.split("=")
      if len(key_value) == 1:
        result["default"] = level.upper()
      else:
        key = key_value[0].strip()
        value = key_value[1].strip()
        result[key] = value.upper()

  return result


def get_logger(logger_name):
  logging.config.dictConfig(get_logging_config())
  return logging.getLogger(logger_name)


class LoggerAware(Protocol):
  logger: logging.Logger


class InfoContext(LoggerAware):
  @contextmanager
  def info(self, before_msg, after_msg):
    self.logger.info(before_msg)
    yield
    self.logger.info(after_msg)


class DebugContext(LoggerAware):
  @contextmanager
  def debug(self, before_msg, after_msg):
    self.logger.debug(before_msg)
    yield
    self.logger.debug(after_msg)
