"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines tool metadata, the start/poll `ToolBackend` contract, and
a backend that runs plain Python callables through a pending-request table.
"""

from __future__ import annotations

import inspect
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Optional, Protocol, Type, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from ..core.auth import Principal
from ..core.errors import NotFoundError
from ..core.pending import PendingRequestTable
from ..core.types import JSONValue, to_json_value
from .errors import ToolExecutionError, ToolValidationError

ReturnT = TypeVar("ReturnT")

ToolFn = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """
    Stable tool metadata used for registry listing and notifications.
    """

    name: str
    description: str = ""
    tool_type: str = "function"
    parameters_schema: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult(Generic[ReturnT]):
    """
    Standardized result of one tool execution.

    Tool failures are reported here (`success=False`) instead of raised, so a
    failing tool never wedges the run that polls it.
    """

    output: Optional[ReturnT] = None
    success: bool = True
    error_message: Optional[str] = None
    tool_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        """Text form used as run output and in follow-up prompts."""
        if not self.success:
            return f"error: {self.error_message or 'tool failed'}"
        if self.output is None:
            return ""
        if isinstance(self.output, str):
            return self.output
        return json.dumps(to_json_value(self.output), ensure_ascii=False)


@runtime_checkable
class ToolBackend(Protocol):
    """Start/poll contract for tool execution."""

    def execute(self, args: JSONValue) -> str:
        """Start an execution and return its execution id."""
        ...

    def poll(self, execution_id: str) -> bool:
        """Return `True` once the execution has finished."""
        ...

    def result(self, execution_id: str) -> ToolResult[Any]:
        """Return the finished execution's result."""
        ...


class FunctionToolBackend:
    """
    `ToolBackend` that runs a Python callable.

    By default the callable runs inside `execute` and the result is available
    on the first poll. With `deferred=True` executions stay pending until
    `complete(...)` (run the callable now) or `respond(...)` (deliver an
    externally computed output) is called.
    """

    def __init__(
        self,
        table: PendingRequestTable,
        *,
        responder: Principal,
        name: str,
        fn: ToolFn | None = None,
        args_model: Type[BaseModel] | None = None,
        deferred: bool = False,
    ) -> None:
        if fn is None and not deferred:
            raise ToolValidationError(f"Tool '{name}' needs a function unless it is deferred")
        self._table = table
        self._responder = responder
        self.name = name
        self.fn = fn
        self.args_model = args_model
        self.deferred = deferred
        self._args: dict[str, JSONValue] = {}

    def execute(self, args: JSONValue) -> str:
        execution_id = self._table.open(self.name, kind="tool")
        self._args[execution_id] = args
        if not self.deferred:
            self.complete(execution_id)
        return execution_id

    def poll(self, execution_id: str) -> bool:
        self.args_for(execution_id)
        return self._table.poll(execution_id).is_complete

    def result(self, execution_id: str) -> ToolResult[Any]:
        self.args_for(execution_id)
        polled = self._table.poll(execution_id)
        if not polled.is_complete:
            raise ToolExecutionError(f"Tool '{self.name}' execution {execution_id} has not finished")
        return polled.payload

    # ''''''''''''''''''''''''''''''''''''''
    # Responder side
    # ''''''''''''''''''''''''''''''''''''''

    def complete(self, execution_id: str) -> ToolResult[Any]:
        """Run the callable for a pending execution and record its result."""
        if self.fn is None:
            raise ToolExecutionError(f"Tool '{self.name}' has no function; use respond()")
        res = self._invoke(self.args_for(execution_id))
        self._table.fulfill(execution_id, res, responder=self._responder)
        return res

    def respond(self, execution_id: str, output: Any) -> None:
        """Deliver an externally computed output (or a ready `ToolResult`)."""
        self.args_for(execution_id)
        res = output if isinstance(output, ToolResult) else ToolResult(output=output, tool_name=self.name)
        self._table.fulfill(execution_id, res, responder=self._responder)

    def args_for(self, execution_id: str) -> JSONValue:
        try:
            return self._args[execution_id]
        except KeyError as e:
            raise NotFoundError(f"Unknown tool execution: {execution_id}") from e

    def pending_executions(self) -> list[str]:
        return [eid for eid in self._args if not self._table.poll(eid).is_complete]

    @property
    def execution_count(self) -> int:
        return len(self._args)

    def _validate(self, raw_args: JSONValue) -> Any:
        if self.args_model is None:
            return raw_args
        try:
            if isinstance(raw_args, str):
                return self.args_model.model_validate_json(raw_args)
            return self.args_model.model_validate(raw_args if raw_args is not None else {})
        except ValidationError as e:
            raise ToolValidationError(f"Invalid arguments for tool '{self.name}': {e}") from e

    def _invoke(self, raw_args: JSONValue) -> ToolResult[Any]:
        assert self.fn is not None
        try:
            args = self._validate(raw_args)
        except ToolValidationError as e:
            return ToolResult(output=None, success=False, error_message=str(e), tool_name=self.name)

        try:
            output = self.fn(args)
        except Exception as e:
            err = ToolExecutionError(f"Error executing tool '{self.name}': {e}")
            return ToolResult(output=None, success=False, error_message=str(err), tool_name=self.name)
        return ToolResult(output=output, success=True, tool_name=self.name)


class Tool:
    """A registrable tool: metadata plus the backend that executes it."""

    def __init__(self, *, spec: ToolSpec, backend: ToolBackend) -> None:
        self.spec = spec
        self.backend = backend

    @property
    def display_name(self) -> str:
        return self.spec.name

    @property
    def name(self) -> str:
        return self.spec.name

    def __repr__(self) -> str:
        return f"Tool(name={self.spec.name!r}, type={self.spec.tool_type!r})"


def function_tool(
    fn: ToolFn | None,
    *,
    table: PendingRequestTable,
    responder: Principal,
    name: str | None = None,
    description: str | None = None,
    args_model: Type[BaseModel] | None = None,
    deferred: bool = False,
) -> Tool:
    """
    Build a `Tool` around a Python callable.

    The name defaults to the function name and the description to the first
    docstring line. When `args_model` is given, raw arguments are validated
    into it before the call and its JSON schema is published on the `ToolSpec`.
    """
    tool_name = name or getattr(fn, "__name__", None)
    if not tool_name:
        raise ToolValidationError("function_tool needs a name when fn has no __name__")
    doc = inspect.getdoc(fn) if fn is not None else None
    spec = ToolSpec(
        name=tool_name,
        description=description if description is not None else (doc.splitlines()[0] if doc else ""),
        tool_type="deferred" if deferred else "function",
        parameters_schema=args_model.model_json_schema() if args_model is not None else {},
    )
    backend = FunctionToolBackend(
        table,
        responder=responder,
        name=tool_name,
        fn=fn,
        args_model=args_model,
        deferred=deferred,
    )
    return Tool(spec=spec, backend=backend)
