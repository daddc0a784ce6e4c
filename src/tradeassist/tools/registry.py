"""Tool registration and discovery system."""

import inspect
import types
from collections.abc import Callable
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

from tradeassist.tools.base import Tool, ToolFunction, ToolParameter, ToolSchema

# Global tool registry
_TOOLS: dict[str, Tool] = {}

# Name of the injected first parameter; never exposed in the schema
CONTEXT_PARAM = "ctx"

_TYPE_MAP = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}


def _describe_type(py_type: Any) -> tuple[str, list[str] | None, str | None]:
    """Convert a type hint to JSON Schema.

    Args:
        py_type: Python type annotation

    Returns:
        Tuple of (JSON type, enum values, array item type)
    """
    origin = get_origin(py_type)

    # Unwrap Optional / X | None
    if origin is Union or origin is types.UnionType:
        non_none = [arg for arg in get_args(py_type) if arg is not type(None)]
        if non_none:
            return _describe_type(non_none[0])

    if origin is Literal:
        values = [str(v) for v in get_args(py_type)]
        return "string", values, None

    if origin is list:
        args = get_args(py_type)
        item_type = _TYPE_MAP.get(args[0], "string") if args else "string"
        return "array", None, item_type

    if origin is dict:
        return "object", None, None

    return _TYPE_MAP.get(py_type, "string"), None, None


def _param_description(fn: ToolFunction, param_name: str) -> str:
    """Look up ``param_name: description`` in the function docstring."""
    if fn.__doc__:
        for line in fn.__doc__.split("\n"):
            line = line.strip()
            if line.startswith(f"{param_name}:"):
                return line[len(param_name) + 1 :].strip()
    return f"Parameter {param_name}"


def tool(
    description: str,
    requires_auth: bool = False,
) -> Callable[[ToolFunction], ToolFunction]:
    """Decorator to register a coroutine as a tool.

    Introspects the function signature and docstring to build the tool
    schema. The first parameter, ``ctx``, receives the CallContext and is
    not part of the schema.

    Args:
        description: Human-readable description of what the tool does
        requires_auth: Whether the caller must be a signed-in customer

    Returns:
        Decorator function

    Example:
        @tool(description="Check stock levels for products")
        async def check_stock(ctx: CallContext, product_ids: list[str]) -> dict:
            '''Check stock.

            Args:
                product_ids: Product IDs or SKUs to check
            '''
            ...
    """

    def decorator(fn: ToolFunction) -> ToolFunction:
        hints = get_type_hints(fn)
        sig = inspect.signature(fn)

        parameters: list[ToolParameter] = []

        for param_name, param in sig.parameters.items():
            if param_name == CONTEXT_PARAM:
                continue

            json_type, enum, items = _describe_type(hints.get(param_name, str))

            parameters.append(
                ToolParameter(
                    name=param_name,
                    type=json_type,
                    description=_param_description(fn, param_name),
                    required=param.default == inspect.Parameter.empty,
                    enum=enum,
                    items=items,
                )
            )

        schema = ToolSchema(
            name=fn.__name__,
            description=description,
            parameters=parameters,
        )

        _TOOLS[fn.__name__] = Tool(schema=schema, fn=fn, requires_auth=requires_auth)

        return fn

    return decorator


def get_tool(name: str) -> Tool:
    """Get a registered tool by name.

    Raises:
        KeyError: If tool not found
    """
    return _TOOLS[name]


def get_all_tools() -> dict[str, Tool]:
    """Get all registered tools.

    Returns:
        Dictionary mapping tool names to Tool instances
    """
    return _TOOLS.copy()


def get_shopping_tools() -> dict[str, Tool]:
    """Import the built-in shopping tools and return the registry."""
    from tradeassist.tools import cart, orders, products, shipping  # noqa: F401

    return get_all_tools()
