"""Conversions between notebook cells and document blocks."""

from __future__ import annotations

from collections.abc import Iterable

from foyle.models import (
    ID_FIELD,
    RUNME_ID_FIELD,
    Block,
    BlockKind,
    BlockOutput,
    BlockOutputItem,
    Cell,
    CellKind,
    CellOutput,
    CellOutputItem,
    Doc,
    Notebook,
)


def blocks_to_cells(blocks: Iterable[Block | None]) -> list[Cell]:
    """Convert a sequence of blocks to cells."""
    return [block_to_cell(block) for block in blocks]


def block_to_cell(block: Block | None) -> Cell:
    """Convert a block to a cell; the block id is stored in the cell metadata."""
    if block is None:
        raise ValueError("block is nil")
    outputs = [block_output_to_cell_output(o) for o in block.outputs]
    metadata = dict(block.metadata)
    metadata[ID_FIELD] = block.id
    return Cell(
        language_id=block.language,
        value=block.contents,
        kind=block_kind_to_cell_kind(block.kind),
        outputs=outputs,
        metadata=metadata,
    )


def block_kind_to_cell_kind(kind: BlockKind) -> CellKind:
    if kind == BlockKind.CODE:
        return CellKind.CELL_KIND_CODE
    if kind == BlockKind.MARKUP:
        return CellKind.CELL_KIND_MARKUP
    return CellKind.CELL_KIND_UNSPECIFIED


def block_output_to_cell_output(output: BlockOutput | None) -> CellOutput:
    if output is None:
        raise ValueError("BlockOutput is nil")
    return CellOutput(
        items=[CellOutputItem(mime=i.mime, data=i.text_data.encode("utf-8")) for i in output.items]
    )


def notebook_to_doc(nb: Notebook | None) -> Doc:
    """Convert a notebook to a document."""
    if nb is None:
        raise ValueError("Notebook is nil")
    return Doc(blocks=[cell_to_block(cell) for cell in nb.cells])


def cell_to_block(cell: Cell | None) -> Block:
    """Convert a cell to a block."""
    if cell is None:
        raise ValueError("Cell is nil")
    outputs = [cell_output_to_block_output(o) for o in cell.outputs]
    return Block(
        id=get_cell_id(cell),
        language=cell.language_id,
        contents=cell.value,
        kind=cell_kind_to_block_kind(cell.kind),
        outputs=outputs,
        metadata=dict(cell.metadata),
    )


def get_cell_id(cell: Cell) -> str:
    """Return the cell's id, preferring the in-memory Runme field; empty if none."""
    if RUNME_ID_FIELD in cell.metadata:
        return cell.metadata[RUNME_ID_FIELD]
    return cell.metadata.get(ID_FIELD, "")


def set_cell_id(cell: Cell, cell_id: str) -> None:
    """Replace any existing id on the cell with cell_id."""
    for key in (ID_FIELD, RUNME_ID_FIELD):
        cell.metadata.pop(key, None)
    cell.metadata[RUNME_ID_FIELD] = cell_id


def cell_kind_to_block_kind(kind: CellKind) -> BlockKind:
    if kind == CellKind.CELL_KIND_CODE:
        return BlockKind.CODE
    if kind == CellKind.CELL_KIND_MARKUP:
        return BlockKind.MARKUP
    return BlockKind.UNKNOWN_BLOCK_KIND


def cell_output_to_block_output(output: CellOutput | None) -> BlockOutput:
    if output is None:
        raise ValueError("CellOutput is nil")
    return BlockOutput(
        items=[
            BlockOutputItem(mime=i.mime, text_data=i.data.decode("utf-8", errors="replace"))
            for i in output.items
        ]
    )