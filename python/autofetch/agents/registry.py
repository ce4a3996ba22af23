"""
Correlation of chat messages to living agents.

A reply chain threads through one Agent: every message the bot sends is
associated with the agent that produced it, keyed by (message id, sender), and a
user replying to that message is routed back to the same agent. Entries expire
a fixed time after insertion; reads never extend them. An expired entry is a
miss, so a thread that stays silent for longer than the TTL starts over with a
fresh agent.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING

from ..errors import UnsupportedAgentKind
from ..logs import get_logger
from .agent import Agent

if TYPE_CHECKING:
  from ..chat.protocol import ChatPrompt

DEFAULT_TTL_SECONDS = 60 * 24 * 60 * 60.0

AgentFactory = Callable[[], Agent]


class AgentKind(Enum):
  DOWNLOAD = "download"


@dataclass(frozen=True)
class CorrelationKey:
  message_id: int
  sender: str

  @classmethod
  def for_reply(cls, prompt: "ChatPrompt") -> Optional["CorrelationKey"]:
    """The key of the message a prompt replies to, or None for a new thread."""
    if prompt.reply_to_message_id is None:
      return None
    return cls(prompt.reply_to_message_id, prompt.sender)

  @classmethod
  def for_response(cls, message_id: int, prompt: "ChatPrompt") -> "CorrelationKey":
    """The key under which a reply sent to the prompt's sender can be continued."""
    return cls(message_id, prompt.sender)


@dataclass
class _Entry:
  agent: Agent
  expires_at: float


class AgentRegistry:
  def __init__(
    self,
    factories: dict[AgentKind, AgentFactory],
    ttl: float = DEFAULT_TTL_SECONDS,
    clock: Callable[[], float] = time.time,
  ):
    """
    :param factories: Builds a new agent for each supported kind
    :param ttl: Seconds an association stays valid after it was inserted
    :param clock: Source of the current time, in seconds
    """
    self.factories = dict(factories)
    self.ttl = ttl
    self.clock = clock
    self.logger = get_logger("registry")
    self._entries: dict[CorrelationKey, _Entry] = {}
    self._lock = threading.Lock()

  def resolve(self, kind: AgentKind, source_key: Optional[CorrelationKey] = None) -> Agent:
    """
    Return the agent associated with source_key, or a new agent of the given kind.

    A miss for a source_key is re-checked and filled under the registry lock, so
    concurrent callers resolving the same key share one agent and the factory runs once.

    Raises:
      UnsupportedAgentKind: No factory is registered for kind and no agent was cached
    """
    if source_key is None:
      return self._create(kind)

    with self._lock:
      entry = self._live_entry(source_key)
      if entry is not None:
        self.logger.debug(f"Resolved cached agent for {source_key}")
        return entry.agent
      agent = self._create(kind, source_key)
      self._entries[source_key] = _Entry(agent, self.clock() + self.ttl)
      return agent

  def _create(self, kind: AgentKind, source_key: Optional[CorrelationKey] = None) -> Agent:
    factory = self.factories.get(kind)
    if factory is None:
      raise UnsupportedAgentKind(kind)
    agent = factory()
    self.logger.info(f"Created new {kind.value} agent" + (f" for {source_key}" if source_key else ""))
    return agent

  def associate(self, key: CorrelationKey, agent: Agent) -> None:
    """Map key to agent, replacing any previous association, until now + ttl."""
    with self._lock:
      self._entries[key] = _Entry(agent, self.clock() + self.ttl)
    self.logger.debug(f"Associated {key} with agent '{agent.name}'")

  def _live_entry(self, key: CorrelationKey) -> Optional[_Entry]:
    # callers hold self._lock
    entry = self._entries.get(key)
    if entry is None:
      return None
    if entry.expires_at <= self.clock():
      del self._entries[key]
      self.logger.debug(f"Association for {key} expired")
      return None
    return entry

  def __len__(self) -> int:
    with self._lock:
      now = self.clock()
      return sum(1 for entry in self._entries.values() if entry.expires_at > now)
