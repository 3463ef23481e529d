"""In-memory example database that retrieves examples by brute-force similarity."""

from __future__ import annotations

import glob
import logging
import os
import queue
import threading
from collections.abc import Callable, Sequence

import numpy as np

from foyle.learner import FILE_SUFFIX
from foyle.llms import Vectorizer, vector_to_array
from foyle.models import Block, Example, GenerateRequest
from foyle.oai import SMALL_EMBEDDINGS_DIMS

_log = logging.getLogger(__name__)

_SHUTDOWN = object()

QueryBuilder = Callable[[GenerateRequest], Sequence[Block]]


def _default_query(request: GenerateRequest) -> list[Block]:
    """Return the blocks of the request's document."""
    if request.doc is None:
        return []
    return list(request.doc.blocks)


def sort_indexes(v: Sequence[float] | np.ndarray, dim: int) -> list[int]:
    """Return the indexes of v[0:dim] sorted so their values ascend."""
    values = np.asarray(v)
    if len(values) < dim:
        _log.error(
            "Vector is too small; will truncate results to vector size (len=%d, dim=%d)",
            len(values),
            dim,
        )
        dim = len(values)
    return sorted(range(dim), key=lambda i: values[i])


def initial_number_of_rows(num_examples: int) -> int:
    """Return the initial number of rows for the embeddings matrix.

    The matrix is deliberately too small so that loading triggers growth,
    leaving spare rows that hold no example.
    """
    size = int(np.float32(num_examples) / np.float32(1.5))
    return max(size, 1)


class InMemoryExampleDB:
    """Example database held in memory; retrieval computes all dot products."""

    def __init__(
        self,
        vectorizer: Vectorizer,
        training_dirs: Sequence[str] = (),
        create_query: QueryBuilder | None = None,
        embedding_dims: int = SMALL_EMBEDDINGS_DIMS,
    ) -> None:
        if vectorizer is None:
            raise ValueError("Vectorizer client is required")
        self.vectorizer = vectorizer
        self.training_dirs = list(training_dirs)
        self.create_query: QueryBuilder = create_query or _default_query
        self.embedding_dims = embedding_dims
        # Examples are stored with their embeddings removed; the embedding of
        # examples[i] is row i of the embeddings matrix.
        self.examples: list[Example] = []
        self.id_to_row: dict[str, int] = {}
        self.embeddings: np.ndarray | None = None
        self._lock = threading.Lock()
        self._queue: queue.Queue = queue.Queue()
        self._pending: set[str] = set()
        self._queue_lock = threading.Lock()
        self._shutting_down = False
        self._thread: threading.Thread | None = None

        try:
            self._load_examples()
        except OSError as exc:
            raise OSError("Failed to load examples") from exc
        if self.embeddings is None:
            self.embeddings = np.zeros((1, self.embedding_dims), dtype=np.float64)

    def _load_examples(self) -> None:
        for directory in self.training_dirs:
            pattern = os.path.join(directory, "*" + FILE_SUFFIX)
            matches = sorted(glob.glob(pattern))
            if self.embeddings is None:
                self.embeddings = np.zeros(
                    (initial_number_of_rows(len(matches)), self.embedding_dims),
                    dtype=np.float64,
                )
            for match in matches:
                try:
                    self.load_row(match)
                except (OSError, ValueError) as exc:
                    _log.error("Failed to load example %s: %s", match, exc)

    def get_examples(self, request: GenerateRequest, max_results: int) -> list[Example]:
        """Return up to max_results examples most similar to the request, best last."""
        if not self.examples:
            return []

        blocks = self.create_query(request)
        q_vec = vector_to_array(self.vectorizer.embed(blocks))

        with self._lock:
            num_examples = len(self.examples)
            scores = self.embeddings @ q_vec
            ordered = sort_indexes(scores, num_examples)
            num_results = min(max_results, num_examples)
            results = []
            for idx in ordered[len(ordered) - num_results:]:
                example = self.examples[idx]
                _log.info("RAG result %s score %s", example.id, float(scores[idx]))
                results.append(example)
            return results

    def get_example(self, example_id: str) -> Example:
        """Return the example with the given id; raises KeyError if absent."""
        with self._lock:
            try:
                row = self.id_to_row[example_id]
            except KeyError:
                raise KeyError(f"Example with id {example_id} not found") from None
            return self.examples[row]

    def start(self) -> None:
        """Start the worker that loads enqueued example files; non-blocking."""
        self._thread = threading.Thread(target=self._event_loop, name="in-memory-db", daemon=True)
        self._thread.start()

    def enqueue_example(self, example_file: str) -> None:
        """Queue an example file to be loaded; it may be new or an update."""
        with self._queue_lock:
            if self._shutting_down:
                raise RuntimeError("Queue is shutting down; can't enqueue any more items")
            if example_file in self._pending:
                return
            self._pending.add(example_file)
        self._queue.put(example_file)

    def _event_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _SHUTDOWN:
                return
            with self._queue_lock:
                self._pending.discard(item)
            try:
                self.load_row(item)
            except (OSError, ValueError) as exc:
                _log.error("Failed to load example %s: %s", item, exc)

    def shutdown(self) -> None:
        """Stop accepting files and wait for queued ones to be loaded."""
        _log.info("Shutting down InMemoryExampleDB")
        with self._queue_lock:
            self._shutting_down = True
        self._queue.put(_SHUTDOWN)
        if self._thread is not None:
            self._thread.join()
        _log.info("InMemoryExampleDB shutdown")

    def load_row(self, example_file: str) -> None:
        """Load the example stored in example_file into the database."""
        _log.debug("Loading example %s", example_file)
        try:
            with open(example_file, "rb") as fh:
                raw = fh.read()
        except OSError as exc:
            raise OSError(f"Failed to read file {example_file}") from exc
        try:
            example = Example.from_bytes(raw)
        except ValueError as exc:
            raise ValueError(f"Failed to unmarshal example from {example_file}") from exc

        size = 0 if example.embedding is None else len(example.embedding)
        if size != self.embedding_dims:
            raise ValueError(
                f"Expected embedding to have {self.embedding_dims} elements but got {size}"
            )
        self.update_example(example)

    def update_example(self, example: Example) -> None:
        """Add the example, or replace the one with the same id.

        The embedding is moved into the matrix and cleared on the example.
        """
        with self._lock:
            if self.embeddings is None:
                self.embeddings = np.zeros((1, self.embedding_dims), dtype=np.float64)
            num_rows, num_cols = self.embeddings.shape
            if example.embedding is not None and len(example.embedding) != num_cols:
                raise ValueError(
                    f"Expected embedding to have {num_cols} elements "
                    f"but got {len(example.embedding)}"
                )

            row = self.id_to_row.get(example.id, len(self.examples))
            if row >= num_rows:
                new_rows = max(num_rows * 3, row + 1)
                grown = np.zeros((new_rows, num_cols), dtype=np.float64)
                grown[:num_rows] = self.embeddings
                self.embeddings = grown

            if example.embedding is not None:
                self.embeddings[row, :] = np.asarray(example.embedding, dtype=np.float64)

            example.embedding = None
            if row < len(self.examples):
                self.examples[row] = example
            else:
                self.examples.append(example)
            self.id_to_row[example.id] = row