"""Learning loop: turn executed notebook sessions into training examples."""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections import Counter
from collections.abc import Callable, Sequence
from typing import Protocol

from foyle.converters import cell_to_block, get_cell_id, notebook_to_doc
from foyle.llms import Vectorizer
from foyle.models import (
    Block,
    Cell,
    Doc,
    Example,
    ExecuteStatus,
    GenerateRequest,
    LogEvent,
    LogEventType,
    Session,
)
from foyle.oai import SMALL_EMBEDDINGS_DIMS

# Suffix of files holding serialized examples.
FILE_SUFFIX = ".example.binpb"

_log = logging.getLogger(__name__)

_metrics_lock = threading.Lock()
# Total number of sessions enqueued for learning.
enqueued_total = Counter()
# Number of sessions processed by the learner, by status.
sessions_processed: Counter[str] = Counter()

_SHUTDOWN = object()

PostLearnEvent = Callable[[str], None]
QueryBuilder = Callable[[GenerateRequest], Sequence[Block]]


class SessionStore(Protocol):
    """Anything that can look up a session by its context id."""

    def get(self, session_id: str) -> Session:
        ...


def _count(status: str) -> None:
    with _metrics_lock:
        sessions_processed[status] += 1


def _default_query(request: GenerateRequest) -> list[Block]:
    """Return the blocks of the request's document."""
    if request.doc is None:
        return []
    return list(request.doc.blocks)


def get_last_exec_event(session: Session) -> LogEvent | None:
    """Return the last successful execution event in the session, or None."""
    exec_event = None
    for event in session.log_events:
        if event.type != LogEventType.EXECUTE:
            continue
        if event.execute_status != ExecuteStatus.SUCCEEDED:
            continue
        exec_event = event
    return exec_event


def is_learnable(session: Session) -> bool:
    """Return True if the session is eligible for learning."""
    if get_last_exec_event(session) is None:
        _count("noexec")
        return False
    if session.full_context is None:
        _count("nocontext")
        _log.error("Session %s missing fullcontext", session.context_id)
        return False
    if session.full_context.notebook is None:
        _count("nonotebook")
        _log.error("Session %s missing notebook", session.context_id)
        return False
    if session.full_context.selected == 0:
        # The first cell has no preceding context to predict it from.
        _count("firstcell")
        return False
    return True


def session_to_query(session: Session) -> GenerateRequest:
    """Build the generate request whose answer is the session's selected cell."""
    context = session.full_context
    if context is None:
        raise ValueError(f"Unable to learn from session {session.context_id}; session has no context")
    if context.notebook is None:
        raise ValueError(f"Unable to learn from session {session.context_id}; session has no notebook")
    doc = notebook_to_doc(context.notebook)
    if context.selected == 0:
        raise ValueError(
            f"Unable to learn from session {session.context_id}; "
            "because the selected cell is the first in the doc"
        )
    # The selected block is what we want to predict, so it is left out.
    doc.blocks = doc.blocks[: context.selected]
    return GenerateRequest(doc=doc, selected_index=len(doc.blocks) - 1)


class Learner:
    """Learns from past sessions by writing them out as training examples."""

    def __init__(
        self,
        sessions: SessionStore,
        vectorizer: Vectorizer,
        training_dirs: Sequence[str],
        create_query: QueryBuilder | None = None,
    ) -> None:
        if vectorizer is None:
            raise ValueError("Vectorizer is required")
        if sessions is None:
            raise ValueError("SessionsManager is required")
        self.sessions = sessions
        self.vectorizer = vectorizer
        self.training_dirs = list(training_dirs)
        self.create_query: QueryBuilder = create_query or _default_query
        self._post_func: PostLearnEvent | None = None
        self._queue: queue.Queue = queue.Queue()
        self._pending: set[str] = set()
        self._lock = threading.Lock()
        self._shutting_down = False
        self._thread: threading.Thread | None = None

    def start(self, post_func: PostLearnEvent | None) -> None:
        """Start a worker thread that reconciles enqueued sessions; non-blocking."""
        self._post_func = post_func
        self._thread = threading.Thread(target=self._event_loop, name="learner", daemon=True)
        self._thread.start()

    def enqueue(self, session: Session) -> None:
        """Queue a session for learning; sessions that aren't learnable are dropped."""
        with self._lock:
            if self._shutting_down:
                raise RuntimeError("Queue is shutting down; can't enqueue anymore items")
        if not is_learnable(session):
            return
        _log.debug("Enqueue example %s", session.context_id)
        with self._lock:
            if session.context_id in self._pending:
                return
            self._pending.add(session.context_id)
        self._queue.put(session.context_id)
        with _metrics_lock:
            enqueued_total["enqueued"] += 1

    def _event_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _SHUTDOWN:
                return
            with self._lock:
                self._pending.discard(item)
            try:
                self.reconcile(item)
            except Exception:
                # Learning errors are treated as permanent and not retried.
                _log.exception("Error learning from example %s", item)

    def shutdown(self) -> None:
        """Stop accepting sessions and wait for queued ones to be processed."""
        _log.info("Shutting down learner")
        with self._lock:
            self._shutting_down = True
        self._queue.put(_SHUTDOWN)
        if self._thread is not None:
            self._thread.join()
        _log.info("Learner shutdown")

    def _example_files(self, session_id: str) -> list[str]:
        return [os.path.join(d, f"{session_id}{FILE_SUFFIX}") for d in self.training_dirs]

    def _compute_embeddings(self, example: Example) -> None:
        if example.embedding is not None:
            return
        query_blocks = example.query.blocks if example.query is not None else []
        vec = list(self.vectorizer.embed(query_blocks))
        if len(vec) != SMALL_EMBEDDINGS_DIMS:
            raise ValueError(
                f"Embeddings have wrong dimension; got {len(vec)}, want {SMALL_EMBEDDINGS_DIMS}"
            )
        example.embedding = vec

    def reconcile(self, session_id: str) -> None:
        """Learn from the session with the given id."""
        try:
            session = self.sessions.get(session_id)
        except Exception as exc:
            _count("nosession")
            raise LookupError(
                f"Unable to learn from session {session_id}; failed to retrieve session"
            ) from exc

        if not is_learnable(session):
            _log.info("Session %s is not learnable", session_id)
            return

        _count("learn")
        context_id = session.context_id
        expected_files = self._example_files(context_id)
        if not expected_files:
            _count("noExampleFiles")
            raise ValueError(f"No training files found for example {context_id}")

        exec_event = get_last_exec_event(session)
        executed_cell: Cell | None = None
        for cell in exec_event.cells:
            exec_id = get_cell_id(cell)
            if not exec_id:
                _count("cellnoid")
                continue
            if exec_id == exec_event.selected_id:
                executed_cell = cell

        if executed_cell is None:
            _count("noexeccell")
            raise ValueError(
                f"Could not learn from session {context_id}; "
                "the executed cell couldn't be found in the session"
            )

        executed_block = cell_to_block(executed_cell)
        executed_block.contents = executed_block.contents.strip()
        if not executed_block.contents:
            _count("emptyblock")
            raise ValueError(f"Could not learn from session {context_id}; the executed block is empty")

        request = session_to_query(session)
        query_blocks = list(self.create_query(request))
        example = Example(id=context_id, query=Doc(blocks=query_blocks), answer=[executed_block])
        self._compute_embeddings(example)
        encoded = example.to_bytes()

        write_errors: list[str] = []
        posted = False
        # An example may be saved in several places, e.g. a shared bucket.
        for expected_file in expected_files:
            try:
                with open(expected_file, "wb") as fh:
                    fh.write(encoded)
            except OSError as exc:
                _log.error("Failed to write example %s to %s: %s", context_id, expected_file, exc)
                write_errors.append(
                    f"Failed to write example {context_id}; to file {expected_file}: {exc}"
                )
                continue
            # Only one file is posted; it doesn't need to be read more than once.
            if not posted and self._post_func is not None:
                try:
                    self._post_func(expected_file)
                except Exception as exc:
                    raise RuntimeError(
                        f"Failed to post learn event for example {context_id}"
                    ) from exc
                posted = True

        if write_errors:
            raise OSError(
                "Not all examples could be successfully reconciled: " + "; ".join(write_errors)
            )