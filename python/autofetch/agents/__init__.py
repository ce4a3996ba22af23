from .agent import Agent, State, StateMachine
from .registry import AgentKind, AgentRegistry, CorrelationKey
from .download import download_agent_factory, DOWNLOADER_INSTRUCTIONS

__all__ = [
  "Agent",
  "State",
  "StateMachine",
  "AgentKind",
  "AgentRegistry",
  "CorrelationKey",
  "download_agent_factory",
  "DOWNLOADER_INSTRUCTIONS",
]
