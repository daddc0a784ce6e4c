"""Tests for function-call execution."""

import asyncio
import json

import pytest

from tradeassist.errors import ToolExecutionError
from tradeassist.llm.client import FunctionCall
from tradeassist.tools.base import CallContext, FunctionResult, Tool, ToolParameter, ToolSchema
from tradeassist.tools.executor import FunctionExecutor
from tradeassist.tools.registry import get_shopping_tools


def _tool(name, fn, parameters=None, requires_auth=False) -> Tool:
    schema = ToolSchema(name=name, description=name, parameters=parameters or [])
    return Tool(schema=schema, fn=fn, requires_auth=requires_auth)


async def _echo(ctx, **kwargs):
    return {"success": True, "args": kwargs}


@pytest.fixture
def executor() -> FunctionExecutor:
    async def boom(ctx):
        raise RuntimeError("database exploded")

    async def refuse(ctx):
        raise ToolExecutionError("Catalog unavailable")

    async def soft_fail(ctx):
        return {"success": False, "error": "Product X not found"}

    async def slow(ctx, label: str):
        await asyncio.sleep(0.05)
        return {"success": True, "label": label}

    tools = {
        "echo": _tool(
            "echo",
            _echo,
            [
                ToolParameter(name="query", type="string", description="q"),
                ToolParameter(name="limit", type="integer", description="n", required=False),
                ToolParameter(name="price", type="number", description="p", required=False),
                ToolParameter(name="ids", type="array", description="i", required=False),
                ToolParameter(name="flag", type="boolean", description="f", required=False),
                ToolParameter(
                    name="mode", type="string", description="m", required=False, enum=["a", "b"]
                ),
            ],
        ),
        "boom": _tool("boom", boom),
        "refuse": _tool("refuse", refuse),
        "soft_fail": _tool("soft_fail", soft_fail),
        "slow": _tool("slow", slow, [ToolParameter(name="label", type="string", description="l")]),
        "private": _tool("private", _echo, requires_auth=True),
    }
    return FunctionExecutor(tools)


@pytest.fixture
def guest(catalog) -> CallContext:
    return CallContext(session_id="s1", catalog=catalog, locale="en")


@pytest.mark.asyncio
async def test_successful_call(executor, guest):
    result = await executor.execute(FunctionCall(id="c1", name="echo", arguments={"query": "hdpe"}), guest)

    assert result.success
    assert result.call_id == "c1"
    assert result.payload == {"success": True, "args": {"query": "hdpe"}}


@pytest.mark.asyncio
async def test_unknown_tool(executor, guest):
    result = await executor.execute(FunctionCall(id="c1", name="nope"), guest)

    assert not result.success
    assert "Unknown function" in result.error


@pytest.mark.asyncio
async def test_missing_required_argument(executor, guest):
    result = await executor.execute(FunctionCall(id="c1", name="echo", arguments={}), guest)

    assert not result.success
    assert "query" in result.error


@pytest.mark.asyncio
async def test_unknown_arguments_dropped_and_types_coerced(executor, guest):
    call = FunctionCall(
        id="c1",
        name="echo",
        arguments={
            "query": "hdpe",
            "limit": "3",
            "price": "1500.5",
            "ids": "p1",
            "flag": "true",
            "bogus": 1,
        },
    )

    result = await executor.execute(call, guest)

    assert result.payload["args"] == {
        "query": "hdpe",
        "limit": 3,
        "price": 1500.5,
        "ids": ["p1"],
        "flag": True,
    }


@pytest.mark.asyncio
async def test_bad_argument_type(executor, guest):
    call = FunctionCall(id="c1", name="echo", arguments={"query": "x", "limit": "many"})

    result = await executor.execute(call, guest)

    assert not result.success
    assert "limit" in result.error


@pytest.mark.asyncio
async def test_enum_violation(executor, guest):
    call = FunctionCall(id="c1", name="echo", arguments={"query": "x", "mode": "c"})

    result = await executor.execute(call, guest)

    assert not result.success
    assert "mode" in result.error


@pytest.mark.asyncio
async def test_exceptions_become_failed_results(executor, guest):
    crashed = await executor.execute(FunctionCall(id="c1", name="boom"), guest)
    refused = await executor.execute(FunctionCall(id="c2", name="refuse"), guest)

    assert not crashed.success and "database exploded" in crashed.error
    assert not refused.success and refused.error == "Catalog unavailable"


@pytest.mark.asyncio
async def test_success_false_payload_is_a_failure(executor, guest):
    result = await executor.execute(FunctionCall(id="c1", name="soft_fail"), guest)

    assert not result.success
    assert result.error == "Product X not found"


@pytest.mark.asyncio
async def test_auth_required(executor, guest, catalog):
    denied = await executor.execute(FunctionCall(id="c1", name="private"), guest)
    member = CallContext(session_id="s1", catalog=catalog, customer_id="cust-1")
    allowed = await executor.execute(FunctionCall(id="c2", name="private"), member)

    assert not denied.success
    assert "Sign-in" in denied.error
    assert allowed.success


@pytest.mark.asyncio
async def test_batch_with_one_failure_keeps_siblings(executor, guest):
    """Three calls, the second fails; the others succeed, in call order."""
    calls = [
        FunctionCall(id="c1", name="slow", arguments={"label": "first"}),
        FunctionCall(id="c2", name="boom"),
        FunctionCall(id="c3", name="slow", arguments={"label": "third"}),
    ]

    results = await executor.execute_batch(calls, guest)

    assert [r.call_id for r in results] == ["c1", "c2", "c3"]
    assert [r.success for r in results] == [True, False, True]
    assert results[0].payload["label"] == "first"
    assert results[2].payload["label"] == "third"


@pytest.mark.asyncio
async def test_batch_runs_concurrently(executor, guest):
    calls = [FunctionCall(id=f"c{i}", name="slow", arguments={"label": str(i)}) for i in range(5)]

    loop = asyncio.get_running_loop()
    start = loop.time()
    await executor.execute_batch(calls, guest)

    assert loop.time() - start < 0.2


@pytest.mark.asyncio
async def test_empty_batch(executor, guest):
    assert await executor.execute_batch([], guest) == []


def test_function_result_to_text():
    ok = FunctionResult(name="t", call_id="c", success=True, payload={"name": "بولي"})
    failed = FunctionResult(name="t", call_id="c", success=False, error="bad")

    assert "بولي" in ok.to_text()
    assert json.loads(failed.to_text()) == {"success": False, "error": "bad"}


@pytest.mark.asyncio
async def test_order_history_requires_sign_in(guest):
    executor = FunctionExecutor(get_shopping_tools())

    result = await executor.execute(FunctionCall(id="c1", name="get_order_history"), guest)

    assert not result.success
    assert "Sign-in" in result.error


def test_schemas_cover_all_tools():
    executor = FunctionExecutor(get_shopping_tools())
    names = {s["function"]["name"] for s in executor.schemas()}
    assert "calculate_budget_solution" in names
