"""
Tool-using agent bound to one conversation thread.

An Agent owns its transcript and a fixed set of tools. Each call to `run` appends
the user's message and drives a StateMachine through propose and tool execution
rounds, yielding one AgentResponse per round.

     ┌──────┐
     │ IDLE │
     └──┬───┘
        │
        ▼
   ┌───────────┐   [tool calls, depth left]   ┌─────────────────┐
   │ PROPOSING │ ───────────────────────────▶ │ EXECUTING_TOOLS │
   │           │ ◀─────────────────────────── │                 │
   └─────┬─────┘                              └─────────────────┘
         │
         │ [no tool calls OR depth exhausted]
         ▼
     ┌──────┐
     │ DONE │
     └──────┘

Runs of the same Agent never interleave: a run holds the agent's lock from the
moment the user's message is appended until its last response is consumed.
"""

import asyncio
import time
import traceback
from enum import Enum
from typing import AsyncIterator, Optional

from ..logs import get_logger
from ..messages import (
  AgentResponse,
  AssistantMessage,
  ConversationMessage,
  SystemMessage,
  ToolCall,
  ToolCallRecord,
  ToolCallResponseMessage,
  UserMessage,
)
from ..models.protocol import Completion, CompletionModel
from ..tools.protocol import InvokableTool

logger = get_logger("agent")

MAX_DEPTH_DEFAULT = 10

DEPTH_EXHAUSTED_OBSERVATION = "Tool call not executed: the maximum number of tool call rounds was reached"


class State(Enum):
  IDLE = "idle"
  PROPOSING = "proposing"
  EXECUTING_TOOLS = "executing_tools"
  DONE = "done"


class StateMachine:
  """
  Drives a single run of an agent.

  Attributes:
    agent: The agent whose transcript and tools are used
    state: Current state
    depth: Number of PROPOSING rounds so far
    completion: The latest completion from the model
  """

  def __init__(self, agent: "Agent"):
    self.agent = agent
    self.state = State.IDLE
    self.depth = 0
    self.completion: Optional[Completion] = None

  async def run(self) -> AsyncIterator[AgentResponse]:
    start_time = time.time()

    while self.state != State.DONE:
      logger.debug(f"[STATE_MACHINE→{self.state.name}] depth={self.depth}")

      match self.state:
        case State.IDLE:
          self.state = State.PROPOSING
        case State.PROPOSING:
          response = await self._handle_proposing_state()
          if response is not None:
            yield response
        case State.EXECUTING_TOOLS:
          yield await self._handle_executing_tools_state()

    logger.info(f"Agent run completed: {self.depth} rounds in {time.time() - start_time:.1f}s")

  async def _handle_proposing_state(self) -> Optional[AgentResponse]:
    """
    Ask the model for the next step.

    OUTCOMES:
      no tool calls                    → DONE, final response
      tool calls, depth left           → EXECUTING_TOOLS
      tool calls, depth exhausted      → DONE, response flagged depth_exhausted
    """
    self.depth += 1
    completion = await self.agent.complete()
    self.completion = completion
    self.agent.messages.append(AssistantMessage(content=completion.content, tool_calls=list(completion.tool_calls)))

    if not completion.tool_calls:
      self.state = State.DONE
      return AgentResponse(content=completion.content, stop_reason=completion.stop_reason)

    if self.depth >= self.agent.max_depth:
      logger.warning(f"[STATE:PROPOSING] Reached max_depth ({self.agent.max_depth}), forcing termination")
      records = []
      for tool_call in completion.tool_calls:
        # every tool call in the transcript keeps a paired result
        self.agent.messages.append(
          ToolCallResponseMessage(
            tool_call_id=tool_call.id, name=tool_call.function.name, content=DEPTH_EXHAUSTED_OBSERVATION
          )
        )
        records.append(ToolCallRecord(tool_call.function.name, tool_call.function.arguments, DEPTH_EXHAUSTED_OBSERVATION))
      self.state = State.DONE
      return AgentResponse(
        content=completion.content,
        stop_reason=completion.stop_reason,
        tool_calls=records,
        depth_exhausted=True,
      )

    logger.debug(f"[STATE:PROPOSING] Model requested {len(completion.tool_calls)} tool calls")
    self.state = State.EXECUTING_TOOLS
    return None

  async def _handle_executing_tools_state(self) -> AgentResponse:
    """Run the requested tool calls in order. A failed call never stops the others."""
    records = []
    for tool_call in self.completion.tool_calls:
      response, record = await self.agent.call_tool(tool_call)
      self.agent.messages.append(response)
      records.append(record)

    self.state = State.PROPOSING
    return AgentResponse(
      content=self.completion.content,
      stop_reason=self.completion.stop_reason,
      tool_calls=records,
    )


class Agent:
  """
  A stateful, tool-capable reasoning session.

  Attributes:
    name: Name used in logs
    model: Completion model
    tools: Tools by name
    max_depth: Maximum propose rounds per run
    messages: The transcript, mutated in place by every run
  """

  def __init__(
    self,
    model: CompletionModel,
    tools: list[InvokableTool],
    max_depth: int = MAX_DEPTH_DEFAULT,
    instructions: Optional[str] = None,
    name: str = "agent",
  ):
    if max_depth < 1:
      raise ValueError(f"max_depth must be at least 1, got {max_depth}")

    self.name = name
    self.model = model
    self.max_depth = max_depth
    self.tools: dict[str, InvokableTool] = {}
    for tool in tools:
      if tool.name in self.tools:
        raise ValueError(f"Duplicate tool name: '{tool.name}'")
      self.tools[tool.name] = tool

    self.messages: list[ConversationMessage] = []
    if instructions:
      self.messages.append(SystemMessage(content=instructions))

    self._tool_specs: Optional[list[dict]] = None
    self._run_lock = asyncio.Lock()

  async def run(self, prompt: str) -> AsyncIterator[AgentResponse]:
    """
    Append the user's prompt and yield one response per round until the agent is done.

    The iterator is lazy: nothing happens until it is iterated. Model failures
    propagate out of it; tool failures become observations.
    """
    async with self._run_lock:
      logger.debug(f"[{self.name}] Starting run, transcript has {len(self.messages)} messages")
      self.messages.append(UserMessage(content=prompt))
      async for response in StateMachine(self).run():
        yield response

  async def tool_specs(self) -> list[dict]:
    if self._tool_specs is None:
      self._tool_specs = [await tool.spec() for tool in self.tools.values()]
    return self._tool_specs

  async def complete(self) -> Completion:
    try:
      return await self.model.complete(list(self.messages), await self.tool_specs())
    except Exception as e:
      logger.error(f"[{self.name}] Model completion failed: {type(e).__name__}: {e}")
      raise

  async def call_tool(self, tool_call: ToolCall) -> tuple[ToolCallResponseMessage, ToolCallRecord]:
    """
    Execute a tool call and return the observation for the transcript and the record for the response.
    """
    tool_name = tool_call.function.name
    tool_args = tool_call.function.arguments

    logger.debug(f"[TOOL→CALL] id={tool_call.id}, name={tool_name}")

    tool = self.tools.get(tool_name)
    if tool is None:
      result = f"Tool '{tool_name}' not found"
      logger.error(f"[TOOL←ERROR] {result}, id={tool_call.id}, available tools: {list(self.tools.keys())}")
    else:
      try:
        start_time = time.time()
        result = str(await tool.invoke(tool_args))
        logger.debug(
          f"[TOOL←RESULT] id={tool_call.id}, name={tool_name}, elapsed={time.time() - start_time:.3f}s, "
          f"result_length={len(result)}"
        )
      except Exception as e:
        result = f"Tool execution failed: {type(e).__name__}: {e}"
        logger.error(f"[TOOL←ERROR] id={tool_call.id}, name={tool_name}, error={result}")
        logger.debug(f"[TOOL←ERROR] Traceback: {traceback.format_exc()}")

    response = ToolCallResponseMessage(tool_call_id=tool_call.id, name=tool_name, content=result)
    return response, ToolCallRecord(name=tool_name, arguments=tool_args, result=result)
