"""Generation backend protocol and data types."""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class FunctionCall:
    """A function invocation requested by the generation backend."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class Message:
    """A message in the generation history."""

    role: str  # "user", "assistant", "function"
    content: str
    function_calls: list[FunctionCall] | None = None
    call_id: str | None = None  # For function result messages
    name: str | None = None  # Function name for function result messages


@dataclass
class GenerationEvent:
    """One event from a streaming generation.

    An event carries a text fragment, a batch of function calls, a finish
    reason, or any combination of them.
    """

    text: str | None = None
    function_calls: list[FunctionCall] | None = None
    finish_reason: str | None = None


class GenerationBackend(Protocol):
    """Protocol for streaming generation backends with function calling."""

    def stream(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        system_instruction: str,
    ) -> AsyncIterator[GenerationEvent]:
        """Stream a generation.

        Args:
            messages: Conversation history, oldest first
            tools: Available tools in OpenAI function format (None disables calling)
            system_instruction: System instruction for this call

        Yields:
            GenerationEvent objects as the backend produces them
        """
        ...
