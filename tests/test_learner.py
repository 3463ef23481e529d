import pytest

from foyle import learner
from foyle.learner import (
    FILE_SUFFIX,
    Learner,
    get_last_exec_event,
    is_learnable,
    session_to_query,
)
from foyle.llms import Vectorizer
from foyle.models import (
    Block,
    BlockKind,
    Cell,
    CellKind,
    Doc,
    Example,
    ExecuteStatus,
    FullContext,
    GenerateRequest,
    LogEvent,
    LogEventType,
    Notebook,
    Session,
)
from foyle.oai import SMALL_EMBEDDINGS_DIMS


class FakeVectorizer(Vectorizer):
    def __init__(self, dims=SMALL_EMBEDDINGS_DIMS):
        self.dims = dims
        self.calls = []

    def embed(self, blocks):
        self.calls.append(list(blocks))
        return [0.5] * self.dims

    def length(self):
        return self.dims


class FakeSessions:
    def __init__(self, sessions):
        self._sessions = {s.context_id: s for s in sessions}

    def get(self, session_id):
        return self._sessions[session_id]


def make_session(context_id="sess1", command="echo hi", status=ExecuteStatus.SUCCEEDED, selected=1):
    cells = [
        Cell(value="Cell 1", kind=CellKind.CELL_KIND_MARKUP, metadata={"id": "c1"}),
        Cell(value=command, kind=CellKind.CELL_KIND_CODE, language_id="bash", metadata={"id": "c2"}),
    ]
    return Session(
        context_id=context_id,
        full_context=FullContext(notebook=Notebook(cells=cells), selected=selected),
        log_events=[
            LogEvent(
                type=LogEventType.EXECUTE,
                execute_status=status,
                cells=cells,
                selected_id="c2",
            )
        ],
    )


def test_session_to_query_simple():
    session = Session(
        full_context=FullContext(
            notebook=Notebook(
                cells=[
                    Cell(value="Cell 1", kind=CellKind.CELL_KIND_MARKUP),
                    Cell(value="Cell 2", kind=CellKind.CELL_KIND_MARKUP),
                ]
            ),
            selected=1,
        )
    )
    expected = GenerateRequest(
        doc=Doc(blocks=[Block(kind=BlockKind.MARKUP, contents="Cell 1", outputs=[])]),
        selected_index=0,
    )
    assert session_to_query(session) == expected


def test_session_to_query_errors():
    with pytest.raises(ValueError, match="no context"):
        session_to_query(Session(context_id="a"))
    with pytest.raises(ValueError, match="no notebook"):
        session_to_query(Session(context_id="a", full_context=FullContext()))
    with pytest.raises(ValueError, match="first in the doc"):
        session_to_query(
            Session(full_context=FullContext(notebook=Notebook(cells=[Cell(value="x")]), selected=0))
        )


def test_get_last_exec_event_picks_last_success():
    first = LogEvent(type=LogEventType.EXECUTE, execute_status=ExecuteStatus.SUCCEEDED, selected_id="a")
    failed = LogEvent(type=LogEventType.EXECUTE, execute_status=ExecuteStatus.FAILED, selected_id="b")
    other = LogEvent(type=LogEventType.ACCEPTED, execute_status=ExecuteStatus.SUCCEEDED, selected_id="c")
    session = Session(log_events=[first, failed, other])
    assert get_last_exec_event(session) is first
    assert get_last_exec_event(Session()) is None


def test_is_learnable_cases():
    assert is_learnable(make_session()) is True
    assert is_learnable(make_session(status=ExecuteStatus.FAILED)) is False
    assert is_learnable(make_session(selected=0)) is False
    no_context = make_session()
    no_context.full_context = None
    assert is_learnable(no_context) is False
    no_nb = make_session()
    no_nb.full_context.notebook = None
    assert is_learnable(no_nb) is False


def test_is_learnable_counts_status():
    before = learner.sessions_processed["firstcell"]
    assert is_learnable(make_session(selected=0)) is False
    assert learner.sessions_processed["firstcell"] == before + 1


def test_constructor_requires_sessions():
    with pytest.raises(ValueError):
        Learner(None, FakeVectorizer(), [])


def test_reconcile_writes_examples(tmp_path):
    dir_a = tmp_path / "a"
    dir_b = tmp_path / "b"
    dir_a.mkdir()
    dir_b.mkdir()
    vec = FakeVectorizer()
    lrn = Learner(FakeSessions([make_session(command="  echo hi \n")]), vec, [str(dir_a), str(dir_b)])
    posted = []
    lrn._post_func = posted.append
    lrn.reconcile("sess1")

    file_a = dir_a / f"sess1{FILE_SUFFIX}"
    file_b = dir_b / f"sess1{FILE_SUFFIX}"
    assert posted == [str(file_a)]
    example = Example.from_bytes(file_a.read_bytes())
    assert example.id == "sess1"
    assert [b.contents for b in example.query.blocks] == ["Cell 1"]
    assert [b.contents for b in example.answer] == ["echo hi"]
    assert example.answer[0].id == "c2"
    assert len(example.embedding) == SMALL_EMBEDDINGS_DIMS
    assert file_b.read_bytes() == file_a.read_bytes()
    assert [[b.contents for b in blocks] for blocks in vec.calls] == [["Cell 1"]]


def test_reconcile_missing_session(tmp_path):
    lrn = Learner(FakeSessions([]), FakeVectorizer(), [str(tmp_path)])
    with pytest.raises(LookupError):
        lrn.reconcile("nope")


def test_reconcile_empty_block(tmp_path):
    lrn = Learner(FakeSessions([make_session(command="   ")]), FakeVectorizer(), [str(tmp_path)])
    with pytest.raises(ValueError, match="empty"):
        lrn.reconcile("sess1")


def test_reconcile_no_executed_cell(tmp_path):
    session = make_session()
    session.log_events[0].selected_id = "missing"
    lrn = Learner(FakeSessions([session]), FakeVectorizer(), [str(tmp_path)])
    with pytest.raises(ValueError, match="executed cell"):
        lrn.reconcile("sess1")


def test_reconcile_no_training_dirs():
    lrn = Learner(FakeSessions([make_session()]), FakeVectorizer(), [])
    with pytest.raises(ValueError, match="No training files"):
        lrn.reconcile("sess1")


def test_reconcile_wrong_embedding_dimension(tmp_path):
    lrn = Learner(FakeSessions([make_session()]), FakeVectorizer(dims=3), [str(tmp_path)])
    with pytest.raises(ValueError, match="wrong dimension"):
        lrn.reconcile("sess1")
    assert list(tmp_path.iterdir()) == []


def test_reconcile_partial_write_failure(tmp_path):
    good = tmp_path / "good"
    good.mkdir()
    missing = tmp_path / "missing"
    lrn = Learner(FakeSessions([make_session()]), FakeVectorizer(), [str(missing), str(good)])
    posted = []
    lrn._post_func = posted.append
    with pytest.raises(OSError, match="Not all examples"):
        lrn.reconcile("sess1")
    assert posted == [str(good / f"sess1{FILE_SUFFIX}")]
    assert (good / f"sess1{FILE_SUFFIX}").exists()


def test_start_enqueue_shutdown(tmp_path):
    session = make_session()
    lrn = Learner(FakeSessions([session]), FakeVectorizer(), [str(tmp_path)])
    posted = []
    lrn.start(posted.append)
    lrn.enqueue(session)
    lrn.shutdown()
    assert posted == [str(tmp_path / f"sess1{FILE_SUFFIX}")]
    with pytest.raises(RuntimeError):
        lrn.enqueue(session)


def test_enqueue_skips_unlearnable(tmp_path):
    session = make_session(selected=0)
    lrn = Learner(FakeSessions([session]), FakeVectorizer(), [str(tmp_path)])
    before = learner.enqueued_total["enqueued"]
    lrn.enqueue(session)
    assert learner.enqueued_total["enqueued"] == before
    lrn.start(None)
    lrn.shutdown()
    assert list(tmp_path.iterdir()) == []