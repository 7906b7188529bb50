"""Tests for the RPC bridge."""

import json

import httpx
import pytest

from relocation_agent.bridge import HttpRpcClient, LocalCaller, call_procedure, resolve_procedure
from relocation_agent.errors import ProcedureError


class _Networked:
    def __init__(self):
        self.seen = []

    async def query(self, args):
        self.seen.append(("query", args))
        return "queried"

    async def mutate(self, args):
        self.seen.append(("mutate", args))
        return "mutated"


class TestCallProcedure:
    """Test the calling convention shared by local and networked procedures."""

    async def test_plain_sync_callable(self):
        """Test that a synchronous callable is invoked directly."""
        assert await call_procedure(lambda args: args["x"] * 2, {"x": 2}) == 4

    async def test_plain_async_callable(self):
        """Test that an async callable is awaited."""

        async def proc(args):
            return {"got": args}

        assert await call_procedure(proc, {"a": 1}) == {"got": {"a": 1}}

    async def test_query_and_mutate_shapes(self):
        """Test that networked procedures are dispatched by the mutation flag."""
        proc = _Networked()

        assert await call_procedure(proc, {"a": 1}, mutation=False) == "queried"
        assert await call_procedure(proc, {"a": 2}) == "mutated"
        assert proc.seen == [("query", {"a": 1}), ("mutate", {"a": 2})]

    async def test_none_and_invalid_procedures(self):
        """Test that missing or uncallable procedures raise ProcedureError."""
        with pytest.raises(ProcedureError):
            await call_procedure(None)
        with pytest.raises(ProcedureError):
            await call_procedure(42)


class TestLocalCaller:
    """Test dotted access over an in-process route table."""

    def test_nested_paths(self):
        """Test that dotted paths resolve through namespaces."""
        caller = LocalCaller(
            {"moves.list": lambda a: ["m"], "services.flights.book": lambda a: "booked"}
        )

        assert caller.moves.list(None) == ["m"]
        assert caller.services.flights.book(None) == "booked"
        assert resolve_procedure(caller, "services.flights.book")(None) == "booked"
        assert caller.paths == ["moves.list", "services.flights.book"]

    def test_unknown_path(self):
        """Test that unknown procedures surface as ProcedureError when resolved."""
        caller = LocalCaller({"moves.list": lambda a: []})

        with pytest.raises(AttributeError):
            caller.housing
        with pytest.raises(ProcedureError):
            resolve_procedure(caller, "moves.delete")


def _client(handler) -> HttpRpcClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpRpcClient("http://app.test/api/trpc/", client=http)


class TestHttpRpcClient:
    """Test the networked client against a mocked transport."""

    async def test_query_encodes_input_and_unwraps(self):
        """Test that queries send GET with the JSON envelope in the query string."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["input"] = json.loads(request.url.params["input"])
            return httpx.Response(200, json={"result": {"data": {"json": [{"id": "m1"}]}}})

        async with _client(handler) as rpc:
            result = await call_procedure(rpc.moves.list, {"limit": 5}, mutation=False)

        assert result == [{"id": "m1"}]
        assert seen == {
            "method": "GET",
            "path": "/api/trpc/moves.list",
            "input": {"json": {"limit": 5}},
        }

    async def test_mutation_posts_json_body(self):
        """Test that mutations POST the JSON envelope to the nested procedure path."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"result": {"data": {"json": {"ok": True}}}})

        async with _client(handler) as rpc:
            result = await rpc.services.flights.book.mutate({"id": "f1"})

        assert result == {"ok": True}
        assert seen["method"] == "POST"
        assert seen["path"] == "/api/trpc/services.flights.book"
        assert seen["body"] == {"json": {"id": "f1"}}

    async def test_remote_error_payload(self):
        """Test that an error envelope raises with the remote message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404, json={"error": {"json": {"message": "Move not found", "code": -32004}}}
            )

        async with _client(handler) as rpc:
            with pytest.raises(ProcedureError, match="Move not found"):
                await rpc.query("moves.getById", {"id": "x"})

    async def test_non_json_response(self):
        """Test that a non-JSON reply is reported as an invalid response."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad gateway")

        async with _client(handler) as rpc:
            with pytest.raises(ProcedureError, match="HTTP 502"):
                await rpc.mutate("moves.create", {})

    async def test_transport_failure(self):
        """Test that connection errors become ProcedureError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as rpc:
            with pytest.raises(ProcedureError, match="request failed"):
                await rpc.query("moves.list")
