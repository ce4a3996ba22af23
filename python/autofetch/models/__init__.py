from .protocol import Completion, CompletionModel
from .openai_model import OpenAIModel

__all__ = ["Completion", "CompletionModel", "OpenAIModel"]
