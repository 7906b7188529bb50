"""Tests for declarative flows and the predefined flow catalog."""

import pytest

from relocation_agent.errors import DuplicateFlowError, FlowNotFoundError
from relocation_agent.flows import (
    FlowContext,
    FlowDefinition,
    FlowOrchestrator,
    FlowStep,
    build_orchestrator,
)
from relocation_agent.tools import build_registry
from relocation_agent.tools.base import ToolContext

from fakes import RecordingBackend


def make_orchestrator(backend, session_id=None):
    return build_orchestrator(
        build_registry(),
        context=ToolContext(rpc=backend.caller(), session_id=session_id),
    )


class TestFlowContext:
    """Test dotted lookups over flow input and step results."""

    def test_lookup(self):
        """Test nested keys, list indices and defaults."""
        ctx = FlowContext(
            input={"city": "Austin"},
            results={"search": {"options": [{"id": "h1"}], "empty": None}},
        )

        assert ctx.lookup("input.city") == "Austin"
        assert ctx.lookup("results.search.options.0.id") == "h1"
        assert ctx.lookup("results.search.options.5.id", "none") == "none"
        assert ctx.lookup("results.search.empty.id", "dflt") == "dflt"
        assert ctx.lookup("results.missing") is None


class TestFlowDefinition:
    """Test flow declaration rules."""

    def test_rejects_empty_and_duplicate_steps(self):
        """Test that flows need at least one step and unique step names."""
        with pytest.raises(ValueError):
            FlowDefinition(name="empty", description="", steps=())
        with pytest.raises(ValueError):
            FlowDefinition(
                name="dup",
                description="",
                steps=(FlowStep("a", "list_moves"), FlowStep("a", "list_moves")),
            )

    def test_duplicate_flow_names(self):
        """Test that an orchestrator refuses two flows with one name."""
        flow = FlowDefinition(name="f", description="", steps=(FlowStep("a", "list_moves"),))

        with pytest.raises(DuplicateFlowError):
            FlowOrchestrator(build_registry(), [flow, flow])


class TestPredefinedFlows:
    """Test the shipped flows against an in-process backend."""

    def test_catalog(self):
        """Test that every predefined flow is registered."""
        orchestrator = make_orchestrator(RecordingBackend())

        assert [f.name for f in orchestrator.list_flows()] == [
            "complete_relocation",
            "housing_search",
            "invoice_and_pay",
            "move_housing_chain",
        ]

    async def test_housing_search_selects_first_option(self):
        """Test that the first search result is selected when no housing id is given."""
        backend = RecordingBackend()
        orchestrator = make_orchestrator(backend)

        result = await orchestrator.execute_flow(
            "housing_search", {"location": "Austin", "budget": 2000}
        )

        assert result.success is True
        assert [s.name for s in result.steps] == ["search_housing", "select_housing"]
        assert backend.calls[0] == (
            "housing.search",
            {"location": "Austin", "budget": 2000.0, "bedrooms": 2},
        )
        assert backend.calls[1] == ("housing.select", {"housingId": "h1"})
        assert result.final_result == {"selected": True}

    async def test_steps_skipped_without_move(self):
        """Test that guarded steps are skipped and recorded when no move was created."""
        backend = RecordingBackend({"moves.createTestMove": {}})
        orchestrator = make_orchestrator(backend)

        result = await orchestrator.execute_flow(
            "complete_relocation", {"toLocation": "Austin", "needsVisa": True}
        )

        assert result.success is True
        assert [s.skipped for s in result.steps] == [False, False, True, True]
        assert result.steps[2].arguments == {}
        assert backend.paths() == ["moves.createTestMove", "housing.search"]
        # The last declared step was skipped, so there is no final result.
        assert result.final_result is None

    async def test_complete_relocation_requests_visa_only_when_needed(self):
        """Test the visa guard."""
        backend = RecordingBackend()
        orchestrator = make_orchestrator(backend)

        result = await orchestrator.execute_flow(
            "complete_relocation",
            {"employeeName": "Ada Lovelace", "toLocation": "London", "needsVisa": False},
        )

        assert result.success is True
        requested = [p["serviceType"] for path, p in backend.calls if path == "services.request"]
        assert requested == ["moving"]
        assert backend.calls[0][1]["employeeName"] == "Ada Lovelace"

    async def test_failure_aborts_remaining_steps(self):
        """Test that a failing step stops the flow and keeps earlier records."""
        backend = RecordingBackend({"housing.search": RuntimeError("search backend down")})
        orchestrator = make_orchestrator(backend)

        result = await orchestrator.execute_flow("complete_relocation", {"toLocation": "Austin"})

        assert result.success is False
        assert len(result.steps) == 2
        assert result.steps[0].result == {"move": {"id": "m1"}, "employee": {"id": "e1"}}
        assert result.steps[1].error is not None
        assert "search backend down" in result.error
        assert "services.request" not in backend.paths()

    async def test_invoice_and_pay_emails_gross_amount(self):
        """Test that later steps read earlier results."""
        backend = RecordingBackend()
        orchestrator = make_orchestrator(backend, session_id="conv-9")

        result = await orchestrator.execute_flow(
            "invoice_and_pay",
            {
                "moveId": "m1",
                "employerId": "emp1",
                "amount": 1000,
                "fee": 50,
                "employeeEmail": "ada@example.com",
            },
        )

        assert result.success is True
        invoice = backend.calls[0][1]
        assert invoice["total"] == "1050.00"
        assert invoice["invoiceNumber"] == "INV-m1"
        path, email = backend.calls[2]
        assert path == "chat.sendEmail"
        assert email["sessionId"] == "conv-9"
        assert email["to"] == ["ada@example.com"]
        assert "1250.00" in email["body"]

    async def test_unknown_flow(self):
        """Test that an unknown flow name is reported, not raised."""
        result = await make_orchestrator(RecordingBackend()).execute_flow("nope")

        assert result.success is False
        assert result.steps == []
        assert result.error == 'Flow "nope" not found'

    async def test_result_wire_shape(self):
        """Test the dictionary form of a flow result."""
        result = await make_orchestrator(RecordingBackend()).execute_flow(
            "housing_search", {"location": "Austin", "housingId": "h2"}
        )

        data = result.to_dict()
        assert data["success"] is True
        assert data["finalResult"] == {"selected": True}
        assert data["steps"][1]["arguments"] == {"housingId": "h2"}

    def test_require_unknown_flow(self):
        """Test that strict lookup raises for unknown flows."""
        orchestrator = make_orchestrator(RecordingBackend())

        assert orchestrator.require("housing_search").name == "housing_search"
        with pytest.raises(FlowNotFoundError):
            orchestrator.require("nope")


class TestStepExecution:
    """Test guards and transforms on hand-built flows."""

    async def test_skipped_middle_step_and_transform(self):
        """Test that a later step runs after a skipped one and its transformed value is final."""
        backend = RecordingBackend()
        seen_results = []

        def lookup_args(ctx):
            seen_results.append(sorted(ctx.results))
            return {"id": ctx.lookup("results.one.move.id")}

        flow = FlowDefinition(
            name="guarded",
            description="Create, maybe list, then fetch the move",
            steps=[
                FlowStep(name="one", tool="create_test_move"),
                FlowStep(name="two", tool="list_moves", condition=lambda ctx: False),
                FlowStep(
                    name="three",
                    tool="get_move",
                    arguments=lookup_args,
                    condition=lambda ctx: ctx.lookup("results.one.move.id") is not None,
                    transform=lambda result, ctx: {"t": result},
                ),
            ],
        )
        orchestrator = FlowOrchestrator(
            build_registry(), [flow], context=ToolContext(rpc=backend.caller())
        )

        result = await orchestrator.execute_flow("guarded")

        assert result.success is True
        assert [s.skipped for s in result.steps] == [False, True, False]
        assert seen_results == [["one"]]
        assert result.steps[2].arguments == {"id": "m1"}
        assert backend.paths() == ["moves.createTestMove", "moves.getById"]
        assert result.steps[2].result == {"t": {"id": "m1"}}
        assert result.final_result == {"t": {"id": "m1"}}
