"""
RPC bridge: one calling convention for in-process and networked procedures.

Tool handlers receive a ``ToolContext.rpc`` object and reach procedures by
dotted attribute access (``ctx.rpc.moves.create``). That object is either a
``LocalCaller`` (plain callables, sync or async) or an ``HttpRpcClient``
(procedures exposing ``query``/``mutate``). ``call_procedure`` accepts both.
"""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Callable, Mapping, Optional

import httpx

from relocation_agent.config import Settings
from relocation_agent.errors import ProcedureError

logger = logging.getLogger(__name__)

__all__ = ["call_procedure", "resolve_procedure", "LocalCaller", "HttpRpcClient"]


async def call_procedure(procedure: Any, args: Any = None, mutation: bool = True) -> Any:
    """
    Invoke ``procedure`` with ``args`` and await its result.

    Objects with a ``mutate``/``query`` method (networked procedures) are
    called through the method matching ``mutation``; plain callables
    (in-process procedures) are called directly. Anything else raises
    ``ProcedureError``.
    """
    if procedure is None:
        raise ProcedureError("RPC procedure is undefined or None")

    method_name = "mutate" if mutation else "query"
    method = getattr(procedure, method_name, None)
    if callable(method):
        result = method(args)
    elif callable(procedure):
        result = procedure(args)
    else:
        raise ProcedureError(
            f"Invalid RPC procedure: expected a callable or an object with a "
            f"{method_name} method, got {type(procedure).__name__}"
        )

    if inspect.isawaitable(result):
        result = await result
    return result


def resolve_procedure(rpc: Any, path: str) -> Any:
    """Walk a dotted procedure path (``"services.flights.book"``) on an RPC object."""
    target = rpc
    for part in path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ProcedureError(f"RPC procedure {path} is not available") from exc
    return target


class _RouteNamespace:
    """Intermediate node of a ``LocalCaller`` path, e.g. ``caller.moves``."""

    def __init__(self, routes: Mapping[str, Callable[..., Any]], path: str) -> None:
        self._routes = routes
        self._path = path

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return _resolve(self._routes, f"{self._path}.{name}")

    def __repr__(self) -> str:
        return f"<procedures {self._path}.*>"


def _resolve(routes: Mapping[str, Callable[..., Any]], path: str) -> Any:
    if path in routes:
        return routes[path]
    prefix = f"{path}."
    if any(key.startswith(prefix) for key in routes):
        return _RouteNamespace(routes, path)
    raise AttributeError(f"No procedure registered under {path!r}")


class LocalCaller:
    """
    In-process caller built from a ``{"router.procedure": callable}`` table.

    >>> caller = LocalCaller({"moves.list": lambda args: []})
    >>> caller.moves.list(None)
    []
    """

    def __init__(self, routes: Mapping[str, Callable[..., Any]]) -> None:
        self._routes = dict(routes)

    @property
    def paths(self) -> list[str]:
        return sorted(self._routes)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return _resolve(self._routes, name)


class _HttpProcedure:
    def __init__(self, client: "HttpRpcClient", path: str) -> None:
        self._client = client
        self._path = path

    def __getattr__(self, name: str) -> "_HttpProcedure":
        if name.startswith("_"):
            raise AttributeError(name)
        return _HttpProcedure(self._client, f"{self._path}.{name}")

    async def query(self, args: Any = None) -> Any:
        return await self._client.query(self._path, args)

    async def mutate(self, args: Any = None) -> Any:
        return await self._client.mutate(self._path, args)

    def __repr__(self) -> str:
        return f"<procedure {self._path}>"


class HttpRpcClient:
    """
    Networked procedure client speaking the tRPC HTTP wire shape.

    Queries are ``GET {base_url}/{path}?input=<json>`` and mutations are
    ``POST {base_url}/{path}`` with a JSON body; both wrap arguments in the
    ``{"json": ...}`` envelope and unwrap ``result.data.json`` from the reply.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(headers=headers, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "HttpRpcClient":
        return cls(settings.rpc_url, **kwargs)

    def __getattr__(self, name: str) -> _HttpProcedure:
        if name.startswith("_"):
            raise AttributeError(name)
        return _HttpProcedure(self, name)

    async def query(self, path: str, args: Any = None) -> Any:
        params = {}
        if args is not None:
            params["input"] = json.dumps({"json": args})
        logger.debug("RPC query %s", path)
        return await self._send("GET", path, params=params)

    async def mutate(self, path: str, args: Any = None) -> Any:
        logger.debug("RPC mutation %s", path)
        return await self._send("POST", path, json={"json": args})

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}/{path}"
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ProcedureError(f"{path}: request failed: {exc}") from exc
        return self._unwrap(path, response)

    @staticmethod
    def _unwrap(path: str, response: httpx.Response) -> Any:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProcedureError(
                f"{path}: invalid response (HTTP {response.status_code})"
            ) from exc

        if isinstance(payload, dict) and payload.get("error") is not None:
            error = payload["error"]
            if isinstance(error, dict):
                error = error.get("json", error)
                message = error.get("message") if isinstance(error, dict) else None
            else:
                message = str(error)
            raise ProcedureError(f"{path}: {message or 'remote procedure failed'}")

        if response.is_error:
            raise ProcedureError(f"{path}: HTTP {response.status_code}")

        try:
            data = payload["result"]["data"]
        except (KeyError, TypeError) as exc:
            raise ProcedureError(f"{path}: response is missing result.data") from exc
        if isinstance(data, dict) and "json" in data:
            return data["json"]
        return data

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "HttpRpcClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
