"""Logging helpers: structured message fields, LLM usage and assertions."""

from __future__ import annotations

import base64
import dataclasses
import json
import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

from foyle import ulid

# Verbosity offset for debug messages.
DEBUG = 1

# Message denoting a level1 assertion.
LEVEL1_ASSERTION = "Level1Assert"

_LOGGER_NAME = "foyle"


class AssertResult(IntEnum):
    """Outcome of an assertion."""

    UNKNOWN_ASSERT_RESULT = 0
    PASSED = 1
    FAILED = 2
    SKIPPED = 3


@dataclass
class Assertion:
    name: Any
    result: AssertResult
    id: str


@dataclass
class LLMUsage:
    """Token usage of a single LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    provider: str = ""


def new_logger() -> logging.Logger:
    """Return the package logger."""
    return logging.getLogger(_LOGGER_NAME)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _is_default(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, dict)):
        return len(value) == 0
    if isinstance(value, (bool, int, float)):
        return value == 0
    return False


def _to_json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            _camel(f.name): _to_json_value(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if not _is_default(getattr(value, f.name))
        }
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, dict):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_value(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"cannot serialize value of type {type(value).__name__}")


def zap_proto(key: str, message: Any) -> dict[str, Any]:
    """Return a log field mapping key to message as a JSON object.

    If the message cannot be serialized the object holds an "error" entry.
    """
    try:
        obj = json.loads(json.dumps(_to_json_value(message)))
    except (TypeError, ValueError) as exc:
        new_logger().error("failed to marshal request: %s", exc)
        return {key: {"error": str(exc)}}
    if not isinstance(obj, dict):
        return {key: {"error": "message is not an object"}}
    return {key: obj}


def log_llm_usage(usage: LLMUsage) -> None:
    """Log LLM usage in a standard form independent of the model."""
    new_logger().info("LLM usage", extra={"usage": dataclasses.asdict(usage)})


def build_assertion(name: Any, passed: bool) -> Assertion:
    """Create an assertion with a fresh id."""
    result = AssertResult.PASSED if passed else AssertResult.FAILED
    return Assertion(name=name, result=result, id=ulid.generate_id())