"""Base types for the tool system."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tradeassist.commerce.catalog import Catalog
    from tradeassist.commerce.models import CartItem
    from tradeassist.rag.index import SemanticIndex


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    type: str  # JSON Schema type
    description: str
    required: bool = True
    enum: list[str] | None = None
    items: str | None = None  # JSON Schema type of array items


@dataclass
class ToolSchema:
    """JSON Schema representation of a tool for function calling."""

    name: str
    description: str
    parameters: list[ToolParameter]

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format.

        Returns:
            Dictionary matching OpenAI's function schema format
        """
        properties: dict[str, Any] = {}
        required = []

        for param in self.parameters:
            param_schema: dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }
            if param.enum:
                param_schema["enum"] = param.enum
            if param.type == "array":
                param_schema["items"] = {"type": param.items or "string"}

            properties[param.name] = param_schema

            if param.required:
                required.append(param.name)

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            },
        }


@dataclass
class CallContext:
    """Per-request state available to every tool call."""

    session_id: str
    catalog: Catalog
    locale: str = "ar"
    customer_id: str | None = None
    cart_items: list[CartItem] = field(default_factory=list)
    product_index: SemanticIndex | None = None
    product_min_score: float = 0.5

    @property
    def is_authenticated(self) -> bool:
        return self.customer_id is not None


# Tool function signature: async function taking the call context first
ToolFunction = Callable[..., Awaitable[dict[str, Any]]]


@dataclass
class Tool:
    """A tool the generation backend can call."""

    schema: ToolSchema
    fn: ToolFunction
    requires_auth: bool = False

    async def execute(self, ctx: CallContext, **kwargs: Any) -> dict[str, Any]:
        """Execute the tool with given arguments.

        Args:
            ctx: Call context for this request
            **kwargs: Tool arguments

        Returns:
            Tool payload
        """
        return await self.fn(ctx, **kwargs)


@dataclass
class FunctionResult:
    """Outcome of one function call."""

    name: str
    call_id: str
    success: bool
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_text(self) -> str:
        """Render as the plain-text content of a function message."""
        if self.success:
            return json.dumps(self.payload, ensure_ascii=False, default=str)
        return json.dumps({"success": False, "error": self.error}, ensure_ascii=False)
