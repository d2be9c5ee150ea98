"""Tool definitions and registry.

A tool is a named capability with a pydantic argument model (used both
to validate calls and to publish the JSON Schema in ``tools/list``) and
an async handler returning a JSON-serializable payload.

Usage:
    async def lookup(args: NameArgs) -> Any:
        return await client.calculate(f"NameNumberPrediction/FullName/{args.name}")

    registry.register(ToolDefinition(
        name="get_numerology_prediction",
        description="Numerology prediction for a name",
        arguments=NameArgs,
        handler=lookup,
    ))
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..protocol.types import JsonRpcErrorCode, ProtocolError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ToolHandler = Callable[[Any], Awaitable[Any]]


class JoinPolicy(str, Enum):
    """How a handler joins its concurrent downstream calls."""

    ALL = "all"  # Wait for all, fail on first failure
    ALL_SETTLED = "all_settled"  # Wait for all, keep successes, drop failures


async def join(calls: dict[str, Awaitable[T]], policy: JoinPolicy) -> dict[str, T]:
    """Run keyed awaitables concurrently and join them under ``policy``.

    Args:
        calls: Mapping of result key to awaitable
        policy: JoinPolicy.ALL raises the first failure and cancels the
            remaining calls; JoinPolicy.ALL_SETTLED returns only the keys
            whose call succeeded

    Returns:
        Mapping of key to result, in the order of ``calls``
    """
    tasks = {key: asyncio.ensure_future(call) for key, call in calls.items()}
    if not tasks:
        return {}

    if policy is JoinPolicy.ALL:
        try:
            results = await asyncio.gather(*tasks.values())
        except BaseException:
            for task in tasks.values():
                task.cancel()
            raise
        return dict(zip(tasks, results))

    settled = await asyncio.gather(*tasks.values(), return_exceptions=True)
    joined: dict[str, T] = {}
    for key, result in zip(tasks, settled):
        if isinstance(result, Exception):
            logger.debug(f"Dropping failed call {key}: {result}")
            continue
        if isinstance(result, BaseException):
            raise result
        joined[key] = result
    return joined


def _strip_titles(schema: dict[str, Any]) -> dict[str, Any]:
    schema = {k: v for k, v in schema.items() if k != "title"}
    properties = schema.get("properties")
    if isinstance(properties, dict):
        schema["properties"] = {
            name: {k: v for k, v in prop.items() if k != "title"}
            for name, prop in properties.items()
        }
    return schema


def text_content(payload: Any) -> dict[str, Any]:
    """Wrap a payload as MCP text content."""
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return {"content": [{"type": "text", "text": text}]}


@dataclass
class ToolDefinition:
    """Definition of an exposed tool.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description for the client
        arguments: pydantic model describing and validating the input
        handler: Async function called with a validated ``arguments`` instance
        join_policy: Fan-out policy the handler uses, None for single calls
    """

    name: str
    description: str
    arguments: type[BaseModel]
    handler: ToolHandler
    join_policy: JoinPolicy | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool name cannot be empty")
        if not self.description:
            raise ValueError("Tool description cannot be empty")
        if not callable(self.handler):
            raise ValueError("Tool handler must be callable")

    @property
    def input_schema(self) -> dict[str, Any]:
        return _strip_titles(self.arguments.model_json_schema())

    def to_dict(self) -> dict[str, Any]:
        """Tool entry as returned by ``tools/list``."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def validate(self, arguments: Any) -> BaseModel:
        """Validate raw call arguments.

        Raises:
            ProtocolError: with INVALID_PARAMS when validation fails
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ProtocolError(
                JsonRpcErrorCode.INVALID_PARAMS,
                f"Invalid arguments for tool {self.name}: expected an object",
            )
        try:
            return self.arguments.model_validate(arguments)
        except ValidationError as e:
            raise ProtocolError(
                JsonRpcErrorCode.INVALID_PARAMS,
                f"Invalid arguments for tool {self.name}: {e}",
            ) from e

    async def call(self, arguments: Any) -> dict[str, Any]:
        """Validate, run the handler and wrap its payload as content."""
        args = self.validate(arguments)
        payload = await self.handler(args)
        return text_content(payload)


@dataclass
class ToolRegistry:
    """Registry of tools exposed by one engine."""

    tools: dict[str, ToolDefinition] = field(default_factory=dict)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self.tools:
            logger.warning(f"Replacing tool definition: {tool.name}")
        self.tools[tool.name] = tool

    def unregister(self, name: str) -> bool:
        return self.tools.pop(name, None) is not None

    def get(self, name: str) -> ToolDefinition | None:
        return self.tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        return list(self.tools.values())

    def __len__(self) -> int:
        return len(self.tools)

    def __contains__(self, name: object) -> bool:
        return name in self.tools
