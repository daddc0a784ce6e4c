"""Streaming backend for OpenAI-compatible inference servers."""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from tradeassist.errors import GenerationStreamError
from tradeassist.llm.client import FunctionCall, GenerationEvent, Message

logger = logging.getLogger(__name__)


@dataclass
class _PendingCall:
    """Tool call being assembled from streamed deltas."""

    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)


class OpenAICompatibleBackend:
    """Generation backend for any OpenAI-compatible chat completions server.

    vLLM, Ollama and the hosted OpenAI API all expose a streaming
    ``/v1/chat/completions`` endpoint. Text deltas are forwarded as they
    arrive; tool-call deltas are accumulated per index and emitted as one
    batch when the choice finishes.
    """

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str | None = None,
        timeout: int = 120,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> None:
        """Initialise the backend.

        Args:
            model: Model name served by the backend.
            base_url: OpenAI-compatible endpoint (must include ``/v1``).
            api_key: API key (many servers ignore this but the SDK requires one).
            timeout: Request timeout in seconds.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens per call.
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(base_url=base_url, api_key=api_key or "none", timeout=timeout)

    def _convert_messages(
        self, messages: list[Message], system_instruction: str
    ) -> list[dict[str, Any]]:
        """Convert internal messages to the OpenAI wire format.

        Function results become ``tool`` messages. The API rejects tool calls
        and tool results that do not pair up, so an assistant message keeps its
        ``tool_calls`` only when every call has a result, and a result is kept
        only when its call was announced.
        """
        openai_messages: list[dict[str, Any]] = []
        if system_instruction:
            openai_messages.append({"role": "system", "content": system_instruction})

        answered = {msg.call_id for msg in messages if msg.role == "function" and msg.call_id}
        announced: set[str] = set()
        for msg in messages:
            if msg.role == "function":
                if not msg.call_id or msg.call_id not in announced:
                    continue
                openai_messages.append(
                    {"role": "tool", "tool_call_id": msg.call_id, "content": msg.content}
                )
                continue

            message_dict: dict[str, Any] = {"role": msg.role, "content": msg.content}
            if msg.function_calls and all(fc.id in answered for fc in msg.function_calls):
                message_dict["tool_calls"] = [
                    {
                        "id": fc.id,
                        "type": "function",
                        "function": {
                            "name": fc.name,
                            "arguments": json.dumps(fc.arguments, ensure_ascii=False),
                        },
                    }
                    for fc in msg.function_calls
                ]
                announced.update(fc.id for fc in msg.function_calls)
            elif msg.function_calls and not msg.content:
                continue
            openai_messages.append(message_dict)

        return openai_messages

    @staticmethod
    def _finish_calls(pending: dict[int, _PendingCall]) -> list[FunctionCall]:
        calls: list[FunctionCall] = []
        for index in sorted(pending):
            item = pending[index]
            raw = "".join(item.arguments)
            try:
                arguments = json.loads(raw) if raw else {}
            except json.JSONDecodeError:
                logger.warning("Discarding malformed arguments for %s: %r", item.name, raw)
                arguments = {}
            if not isinstance(arguments, dict):
                arguments = {}
            calls.append(
                FunctionCall(id=item.id or f"call_{index}", name=item.name, arguments=arguments)
            )
        return calls

    async def stream(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        system_instruction: str,
    ) -> AsyncIterator[GenerationEvent]:
        """Stream a generation.

        Args:
            messages: Conversation history.
            tools: Available tools in OpenAI function format.
            system_instruction: System instruction for this call.

        Yields:
            GenerationEvent objects.

        Raises:
            GenerationStreamError: If the server rejects or aborts the stream.
        """
        params: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages, system_instruction),
            "temperature": self.temperature,
            "stream": True,
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"
        if self.max_tokens:
            params["max_tokens"] = self.max_tokens

        try:
            response = await self.client.chat.completions.create(**params)
        except OpenAIError as e:
            raise GenerationStreamError(f"Generation request failed: {e}") from e

        pending: dict[int, _PendingCall] = {}
        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta

                if delta is not None and delta.content:
                    yield GenerationEvent(text=delta.content)

                if delta is not None and delta.tool_calls:
                    for tc in delta.tool_calls:
                        item = pending.setdefault(tc.index, _PendingCall())
                        if tc.id:
                            item.id = tc.id
                        if tc.function is not None:
                            if tc.function.name:
                                item.name = tc.function.name
                            if tc.function.arguments:
                                item.arguments.append(tc.function.arguments)

                if choice.finish_reason:
                    calls = self._finish_calls(pending)
                    pending = {}
                    yield GenerationEvent(
                        function_calls=calls or None,
                        finish_reason=choice.finish_reason,
                    )
        except OpenAIError as e:
            raise GenerationStreamError(f"Generation stream failed: {e}") from e
        finally:
            await response.close()

        if pending:
            yield GenerationEvent(function_calls=self._finish_calls(pending), finish_reason="stop")
