"""Function-call execution for the chat pipeline."""

import asyncio
import logging
from typing import Any

from tradeassist.errors import ToolExecutionError
from tradeassist.llm.client import FunctionCall
from tradeassist.tools.base import CallContext, FunctionResult, Tool, ToolParameter

logger = logging.getLogger(__name__)


class ArgumentError(ValueError):
    """Arguments supplied by the model do not fit the tool schema."""


def _coerce(value: Any, param: ToolParameter) -> Any:
    """Coerce loosely typed model arguments to the declared JSON type."""
    if value is None:
        return None
    try:
        if param.type == "integer" and not isinstance(value, bool):
            return int(float(value))
        if param.type == "number" and not isinstance(value, bool):
            return float(value)
        if param.type == "boolean" and isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        if param.type == "array" and not isinstance(value, list):
            return [value]
        if param.type == "string" and not isinstance(value, str):
            return str(value)
    except (TypeError, ValueError) as e:
        raise ArgumentError(f"Argument '{param.name}' must be of type {param.type}") from e

    if param.enum and value not in param.enum:
        raise ArgumentError(f"Argument '{param.name}' must be one of {', '.join(param.enum)}")
    return value


def validate_arguments(tool: Tool, arguments: dict[str, Any]) -> dict[str, Any]:
    """Check required arguments, drop unknown ones and coerce types.

    Args:
        tool: Tool being called
        arguments: Raw arguments from the model

    Returns:
        Cleaned keyword arguments

    Raises:
        ArgumentError: If a required argument is missing or has the wrong type
    """
    params = {p.name: p for p in tool.schema.parameters}

    missing = [
        name for name, p in params.items() if p.required and arguments.get(name) is None
    ]
    if missing:
        raise ArgumentError(f"Missing required argument(s): {', '.join(missing)}")

    unknown = set(arguments) - set(params)
    if unknown:
        logger.debug("Dropping unknown arguments for %s: %s", tool.schema.name, sorted(unknown))

    cleaned: dict[str, Any] = {}
    for name, value in arguments.items():
        if name in params and value is not None:
            cleaned[name] = _coerce(value, params[name])
    return cleaned


class FunctionExecutor:
    """Executes function calls requested by the generation backend.

    A call never raises: unknown tools, bad arguments, missing sign-in and
    tool exceptions all come back as a failed FunctionResult so the model
    can react to them.
    """

    def __init__(self, tools: dict[str, Tool]):
        """Initialize the executor.

        Args:
            tools: Available tools keyed by name
        """
        self.tools = tools

    def schemas(self) -> list[dict[str, Any]]:
        """Tool schemas in OpenAI function format."""
        return [t.schema.to_openai_format() for t in self.tools.values()]

    async def execute(self, call: FunctionCall, ctx: CallContext) -> FunctionResult:
        """Execute one function call.

        Args:
            call: Function call from the model
            ctx: Call context for this request

        Returns:
            FunctionResult, successful or not
        """
        tool = self.tools.get(call.name)
        if tool is None:
            return self._failed(call, f"Unknown function: {call.name}")

        if tool.requires_auth and not ctx.is_authenticated:
            return self._failed(call, f"Sign-in is required to use {call.name}")

        try:
            arguments = validate_arguments(tool, call.arguments)
            payload = await tool.execute(ctx, **arguments)
        except ArgumentError as e:
            return self._failed(call, str(e))
        except ToolExecutionError as e:
            logger.warning("Tool %s failed for session %s: %s", call.name, ctx.session_id, e)
            return self._failed(call, e.message)
        except Exception as e:
            logger.exception("Tool %s raised for session %s", call.name, ctx.session_id)
            return self._failed(call, f"{call.name} failed: {e}")

        if not isinstance(payload, dict):
            payload = {"success": True, "result": payload}

        if payload.get("success") is False:
            return FunctionResult(
                name=call.name,
                call_id=call.id,
                success=False,
                payload=payload,
                error=str(payload.get("error") or f"{call.name} failed"),
            )

        return FunctionResult(name=call.name, call_id=call.id, success=True, payload=payload)

    async def execute_batch(
        self, calls: list[FunctionCall], ctx: CallContext
    ) -> list[FunctionResult]:
        """Execute a batch of calls concurrently.

        All calls complete (or fail individually) before this returns.

        Returns:
            Results in the order of ``calls``
        """
        if not calls:
            return []
        results = await asyncio.gather(*(self.execute(call, ctx) for call in calls))
        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Executed %d function call(s) for session %s (%d failed)",
            len(results),
            ctx.session_id,
            failed,
        )
        return list(results)

    @staticmethod
    def _failed(call: FunctionCall, reason: str) -> FunctionResult:
        return FunctionResult(name=call.name, call_id=call.id, success=False, error=reason)

