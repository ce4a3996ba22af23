import json
import inspect
import re
import traceback

from typing import get_type_hints, Optional, get_origin, get_args, Union
from functools import wraps
from docstring_parser import parse

from .protocol import InvokableTool
from ..errors import InvalidParameters
from ..logs.logs import DebugContext

MAX_JSON_SIZE = 1024 * 1024


class Tool(InvokableTool, DebugContext):
  """
  A named, schema-described callable the agent can invoke.

  The parameter schema is derived from the callable's signature and docstring.
  `run` validates and coerces arguments before calling through and lets failures
  propagate; `invoke` is the agent-facing entry point that turns any failure into
  an error observation string.
  """

  _logger = None

  @classmethod
  def class_logger(cls):
    if cls._logger:
      return cls._logger
    else:
      from ..logs.logs import get_logger

      cls._logger = get_logger("tool")
      return cls._logger

  def __init__(self, func, name: Optional[str] = None):
    self.logger = Tool.class_logger()
    name, spec = function_spec(func, name)
    self.func = wrap(func)
    self.name = name
    self._spec = spec
    if re.match(r"^[a-z0-9_-]+$", spec["function"]["name"]) is None:
      raise ValueError("Tool name may only contain [a-z0-9_-] characters")

  async def spec(self) -> dict:
    return self._spec

  async def run(self, parameters: Optional[dict] = None):
    """Validate parameters against the signature and call the tool. Failures propagate."""
    args = self._validate_parameters(parameters or {})
    return await self.func(**args)

  async def invoke(self, json_argument: Optional[str]) -> str:
    with self.debug(f"Invoke tool: '{self.name}'", f"Invoked tool: '{self.name}'"):
      self.logger.debug(f"The tool arguments are: {json_argument}")
      try:
        args = self._parse_arguments(json_argument)
        tool_response = to_observation(await self.run(args))
        self.logger.debug(f"The tool call succeeded: {tool_response}")
      except Exception as e:
        self.logger.error(f"Tool '{self.name}' execution failed: {type(e).__name__}: {e}")
        self.logger.debug(f"Arguments: {json_argument}, traceback: {traceback.format_exc()}")
        tool_response = f"Tool execution failed: {type(e).__name__}: {e}"
      return tool_response

  def _parse_arguments(self, json_argument: Optional[str]) -> dict:
    if json_argument is None or json_argument.strip() == "":
      return {}

    if len(json_argument) > MAX_JSON_SIZE:
      raise InvalidParameters(
        f"JSON argument too large: {len(json_argument):,} bytes (max: {MAX_JSON_SIZE:,})", self.name
      )

    try:
      args = json.loads(json_argument)
    except json.JSONDecodeError as e:
      raise InvalidParameters(f"Invalid JSON format: {str(e)}", self.name)

    if not isinstance(args, dict):
      raise InvalidParameters(f"JSON argument must be an object, got {type(args).__name__}", self.name)

    return args

  def _validate_parameters(self, args: dict) -> dict:
    if not isinstance(args, dict):
      raise InvalidParameters(f"Parameters must be an object, got {type(args).__name__}", self.name)

    signature = inspect.signature(self.func)
    param_names = set(signature.parameters.keys())
    provided_args = set(args.keys())

    extra_args = provided_args - param_names
    if extra_args:
      raise InvalidParameters(f"Unexpected arguments: {', '.join(sorted(extra_args))}", self.name)

    missing_required = set()
    for param_name, param in signature.parameters.items():
      if param.default == inspect.Parameter.empty and args.get(param_name) is None:
        missing_required.add(param_name)

    if missing_required:
      raise InvalidParameters(f"Missing required arguments: {', '.join(sorted(missing_required))}", self.name)

    return self._coerce_argument_types(args)

  def _coerce_argument_types(self, args: dict) -> dict:
    """Coerce argument types to match function type hints.

    JSON produced by a model may carry strings where integers or booleans are expected.
    """
    type_hints = get_type_hints(self.func)

    coerced_args = {}
    for arg_name, arg_value in args.items():
      if arg_name not in type_hints:
        coerced_args[arg_name] = arg_value
        continue

      expected_type = type_hints[arg_name]

      # Optional[X] is Union[X, None]
      origin = get_origin(expected_type)
      if origin is Union or (
        hasattr(expected_type, "__class__") and expected_type.__class__.__name__ == "UnionType"
      ):
        type_args = get_args(expected_type)
        if type_args:
          expected_type = next((t for t in type_args if t is not type(None)), expected_type)

      try:
        coerced_args[arg_name] = coerce_value(arg_value, expected_type)
      except (ValueError, TypeError):
        raise InvalidParameters(
          f"Argument '{arg_name}' has invalid type: expected {getattr(expected_type, '__name__', expected_type)}, "
          f"got {type(arg_value).__name__} (value: {arg_value!r})",
          self.name,
        )

    return coerced_args


def coerce_value(value, expected_type):
  if value is None:
    return None

  origin = get_origin(expected_type)
  if origin is not None:
    if isinstance(value, origin):
      return value
    raise TypeError(f"Cannot coerce {type(value).__name__} to {origin.__name__}")

  # bool is a subclass of int, so it must not pass for an int parameter
  if expected_type is int and isinstance(value, bool):
    raise TypeError("Cannot coerce bool to int")

  if isinstance(value, expected_type):
    return value

  if expected_type is int:
    if isinstance(value, str):
      return int(value.strip())
    if isinstance(value, float) and value.is_integer():
      return int(value)
    raise TypeError(f"Cannot coerce {type(value).__name__} to int")

  elif expected_type is float:
    if isinstance(value, (str, int)):
      return float(value)
    raise TypeError(f"Cannot coerce {type(value).__name__} to float")

  elif expected_type is bool:
    if isinstance(value, str):
      lower_value = value.lower()
      if lower_value in ("true", "1", "yes", "on"):
        return True
      elif lower_value in ("false", "0", "no", "off"):
        return False
      raise ValueError(f"Cannot coerce string '{value}' to bool")
    raise TypeError(f"Cannot coerce {type(value).__name__} to bool")

  elif expected_type is str:
    if isinstance(value, (int, float)):
      return str(value)
    raise TypeError(f"Cannot coerce {type(value).__name__} to str")

  return value


def to_observation(result) -> str:
  if isinstance(result, str):
    return result
  return json.dumps(result)


def wrap(f) -> callable:
  @wraps(f)
  async def wrapper(**kwargs):
    r = f(**kwargs)
    if inspect.iscoroutine(r):
      return await r
    return r

  return wrapper


def function_spec(f, name: Optional[str] = None) -> (str, dict):
  f_name = name or f.__name__
  f_description = f"Function {f_name}"
  if f.__doc__:
    parsed = parse(inspect.cleandoc(f.__doc__))
    f_description = "\n\n".join(part for part in (parsed.short_description, parsed.long_description) if part)
  f_parameters = parameters_spec(f)
  return f_name, {
    "type": "function",
    "function": {"name": f_name, "description": f_description, "parameters": f_parameters},
  }


def parameters_spec(f):
  f_parameters = {"type": "object", "properties": {}, "required": []}

  signature = inspect.signature(f)
  type_hints = get_type_hints(f)

  p_info_from_docstring = parameter_info_from_docstring(f.__doc__)
  for p_name, p in signature.parameters.items():
    # Prefer the type from the docstring if available.
    p_type = getattr(type_hints.get(p_name), "__name__", "Any")
    doc_type, doc_description = p_info_from_docstring.get(p_name, (None, None))
    p_type = to_json_schema_type(doc_type or p_type)

    f_parameters["properties"][p_name] = {"type": p_type, "description": doc_description or f"parameter {p_name}"}

    if p.default == inspect.Parameter.empty:
      f_parameters["required"].append(p_name)

  return f_parameters


def to_json_schema_type(p_type):
  return {
    "bool": "boolean",
    "int": "integer",
    "float": "number",
    "str": "string",
    "list": "array",
    "dict": "object",
  }.get(p_type, "string")


def parameter_info_from_docstring(docstring):
  p_info = {}
  if not docstring:
    return p_info

  parsed = parse(docstring)
  for parameter in parsed.params:
    p_info[parameter.arg_name] = (parameter.type_name, parameter.description)

  return p_info
