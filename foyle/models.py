"""Data types for documents, notebooks, examples and sessions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

# Field name for the ID that Runme uses in memory.
RUNME_ID_FIELD = "runme.dev/id"
# Field name for the ID when it is serialized.
ID_FIELD = "id"
# Field name that marks a cell as a ghost cell.
GHOST_KEY_FIELD = "_ghostCell"


class BlockKind(IntEnum):
    """Kind of a document block."""

    UNKNOWN_BLOCK_KIND = 0
    MARKUP = 1
    CODE = 2


class CellKind(IntEnum):
    """Kind of a notebook cell."""

    CELL_KIND_UNSPECIFIED = 0
    CELL_KIND_MARKUP = 1
    CELL_KIND_CODE = 2


class LogEventType(IntEnum):
    """Type of a log event recorded in a session."""

    UNKNOWN_EVENT = 0
    EXECUTE = 1
    ACCEPTED = 2
    REJECTED = 3
    SESSION_START = 4
    SESSION_END = 5


class ExecuteStatus(IntEnum):
    """Outcome of a cell execution."""

    UNKNOWN_EXECUTE_STATUS = 0
    SUCCEEDED = 1
    FAILED = 2


@dataclass
class BlockOutputItem:
    mime: str = ""
    text_data: str = ""


@dataclass
class BlockOutput:
    items: list[BlockOutputItem] = field(default_factory=list)


@dataclass
class Block:
    id: str = ""
    language: str = ""
    contents: str = ""
    kind: BlockKind = BlockKind.UNKNOWN_BLOCK_KIND
    outputs: list[BlockOutput] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class Doc:
    blocks: list[Block] = field(default_factory=list)


@dataclass
class CellOutputItem:
    mime: str = ""
    data: bytes = b""


@dataclass
class CellOutput:
    items: list[CellOutputItem] = field(default_factory=list)


@dataclass
class Cell:
    value: str = ""
    kind: CellKind = CellKind.CELL_KIND_UNSPECIFIED
    language_id: str = ""
    outputs: list[CellOutput] = field(default_factory=list)
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class Notebook:
    cells: list[Cell] = field(default_factory=list)


@dataclass
class GenerateRequest:
    doc: Doc | None = None
    selected_index: int = 0


@dataclass
class LogEvent:
    type: LogEventType = LogEventType.UNKNOWN_EVENT
    execute_status: ExecuteStatus = ExecuteStatus.UNKNOWN_EXECUTE_STATUS
    cells: list[Cell] = field(default_factory=list)
    selected_id: str = ""
    context_id: str = ""


@dataclass
class FullContext:
    notebook: Notebook | None = None
    selected: int = 0


@dataclass
class Session:
    context_id: str = ""
    full_context: FullContext | None = None
    log_events: list[LogEvent] = field(default_factory=list)


def _enum_name(value: Enum) -> str:
    return value.name


def _block_to_dict(block: Block) -> dict[str, Any]:
    return {
        "id": block.id,
        "language": block.language,
        "contents": block.contents,
        "kind": _enum_name(block.kind),
        "outputs": [
            {"items": [{"mime": i.mime, "textData": i.text_data} for i in o.items]}
            for o in block.outputs
        ],
        "metadata": dict(block.metadata),
    }


def _block_from_dict(raw: dict[str, Any]) -> Block:
    return Block(
        id=str(raw.get("id", "")),
        language=str(raw.get("language", "")),
        contents=str(raw.get("contents", "")),
        kind=BlockKind[raw.get("kind", BlockKind.UNKNOWN_BLOCK_KIND.name)],
        outputs=[
            BlockOutput(
                items=[
                    BlockOutputItem(
                        mime=str(item.get("mime", "")),
                        text_data=str(item.get("textData", "")),
                    )
                    for item in output.get("items", [])
                ]
            )
            for output in raw.get("outputs", [])
        ],
        metadata={str(k): str(v) for k, v in raw.get("metadata", {}).items()},
    )


@dataclass
class Example:
    """A training example: a query document, its answer and an optional embedding."""

    id: str = ""
    query: Doc | None = None
    answer: list[Block] = field(default_factory=list)
    embedding: list[float] | None = None

    def to_bytes(self) -> bytes:
        """Serialize the example."""
        payload: dict[str, Any] = {
            "id": self.id,
            "answer": [_block_to_dict(b) for b in self.answer],
        }
        if self.query is not None:
            payload["query"] = {"blocks": [_block_to_dict(b) for b in self.query.blocks]}
        if self.embedding is not None:
            payload["embedding"] = [float(x) for x in self.embedding]
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> Example:
        """Deserialize an example; raises ValueError if the data is malformed."""
        try:
            raw = json.loads(data.decode("utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("example must be a JSON object")
            query_raw = raw.get("query")
            query = None
            if query_raw is not None:
                query = Doc(blocks=[_block_from_dict(b) for b in query_raw.get("blocks", [])])
            embedding_raw = raw.get("embedding")
            embedding = None if embedding_raw is None else [float(x) for x in embedding_raw]
            return cls(
                id=str(raw.get("id", "")),
                query=query,
                answer=[_block_from_dict(b) for b in raw.get("answer", [])],
                embedding=embedding,
            )
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Failed to decode example: {exc}") from exc