"""Generation backend abstraction."""

from .client import FunctionCall, GenerationBackend, GenerationEvent, Message
from .factory import create_backend
from .openai_compat import OpenAICompatibleBackend

__all__ = [
    "FunctionCall",
    "GenerationBackend",
    "GenerationEvent",
    "Message",
    "OpenAICompatibleBackend",
    "create_backend",
]
