"""End-to-end budget planning turn: tool call, visual payload and follow-up."""

import pytest

from tradeassist.chat.frames import DONE
from tradeassist.chat.orchestrator import ChatRequest
from tradeassist.llm.client import FunctionCall


@pytest.mark.asyncio
async def test_hdpe_budget_plan(stub, make_orchestrator, store):
    call = FunctionCall(
        id="call_budget",
        name="calculate_budget_solution",
        arguments={"budget": "2000", "requirements": "HDPE", "priority": "balanced"},
    )
    backend = stub(
        [
            stub.calls(call),
            stub.text("Within 2000 EGP you can get the film grade", " and the pipe grade."),
        ]
    )
    orchestrator = make_orchestrator(backend)

    turn = await orchestrator.begin(
        ChatRequest(message="I need 50kg of HDPE under 2000 EGP", session_id="s1", locale="en"),
        "203.0.113.7",
    )
    frames = [frame async for frame in orchestrator.stream(turn)]

    visual, *texts, done = frames
    assert done == DONE
    assert visual["type"] == "visual"

    solution = visual["data"]["budgetSolution"]
    assert solution["budget"] == 2000
    assert solution["priority"] == "balanced"
    assert [item["product"]["id"] for item in solution["items"]] == ["p-hdpe-film", "p-hdpe-25"]
    assert all(item["product"]["inStock"] for item in solution["items"])
    assert solution["totalCost"] == 1850
    assert solution["remainingBudget"] == 150
    assert sum(item["subtotal"] for item in solution["items"]) == solution["totalCost"]

    assert "".join(t["text"] for t in texts) == (
        "Within 2000 EGP you can get the film grade and the pipe grade."
    )

    records = await store.history(turn.conversation.id)
    assert [r.role for r in records] == ["user", "assistant", "function", "assistant"]
    assert '"totalCost": 1850' in records[2].content
    assert records[3].content == "Within 2000 EGP you can get the film grade and the pipe grade."


@pytest.mark.asyncio
async def test_budget_only_call_streams_one_visual_and_one_text(stub, make_orchestrator, store):
    call = FunctionCall(id="c1", name="calculate_budget_solution", arguments={"budget": 2000})
    backend = stub([stub.calls(call), stub.text("Here is a plan within your budget.")])
    orchestrator = make_orchestrator(backend)

    turn = await orchestrator.begin(
        ChatRequest(message="I need 50kg of HDPE under 2000 EGP", session_id="s1", locale="en"),
        "203.0.113.7",
    )
    frames = [frame async for frame in orchestrator.stream(turn)]

    assert len(frames) == 3
    visual, text, done = frames
    assert visual["type"] == "visual"
    solution = visual["data"]["budgetSolution"]
    assert solution["budget"] == 2000
    assert solution["items"]
    assert solution["totalCost"] <= 2000
    assert text == {"text": "Here is a plan within your budget."}
    assert done == DONE

    records = await store.history(turn.conversation.id)
    assert records[-1].role == "assistant"
    assert records[-1].content == "Here is a plan within your budget."
