import threading

import pytest

from workflow_orchestrator.errors import ErrorKind, InvalidArgumentError
from workflow_orchestrator.store import PipelineStore


def _store(*tool_ids):
    store = PipelineStore()
    for tool_id in tool_ids:
        store.append(tool_id)
    return store


def _tools(store):
    return [step.tool_id for step in store.snapshot()]


# ---------------------------------------------------------------------------
# Append / remove
# ---------------------------------------------------------------------------

def test_append_preserves_insertion_order():
    store = _store("matrix.add", "data.normalize", "utils.log")
    assert _tools(store) == ["matrix.add", "data.normalize", "utils.log"]
    assert len(store) == 3


def test_append_tolerates_unregistered_tool_ids():
    store = _store("does.not.exist")
    assert _tools(store) == ["does.not.exist"]


def test_instance_ids_are_unique():
    store = _store(*["matrix.add"] * 20)
    ids = [step.instance_id for step in store.snapshot()]
    assert len(set(ids)) == 20


def test_remove_by_id():
    store = _store("matrix.add", "utils.log")
    first = store.snapshot()[0]

    assert store.remove_by_id(first.instance_id) is True
    assert _tools(store) == ["utils.log"]
    assert store.get(first.instance_id) is None


def test_remove_unknown_id_returns_false():
    store = _store("matrix.add")
    assert store.remove_by_id("nope") is False
    assert len(store) == 1


# ---------------------------------------------------------------------------
# Reorder
# ---------------------------------------------------------------------------

def test_move_to_forward_and_back():
    store = _store("a", "b", "c", "d")

    store.move_to(0, 2)
    assert _tools(store) == ["b", "c", "a", "d"]

    store.move_to(3, 0)
    assert _tools(store) == ["d", "b", "c", "a"]


def test_move_to_is_a_permutation():
    store = _store("a", "b", "c", "d", "e")
    before = {step.instance_id for step in store.snapshot()}

    store.move_to(4, 1)
    store.move_to(2, 2)

    after = {step.instance_id for step in store.snapshot()}
    assert before == after
    assert len(store) == 5


@pytest.mark.parametrize("from_index,to_index", [(-1, 0), (0, 3), (3, 0), (0, -1), (True, 0)])
def test_move_to_rejects_out_of_range(from_index, to_index):
    store = _store("a", "b", "c")
    before = store.snapshot()

    with pytest.raises(InvalidArgumentError) as info:
        store.move_to(from_index, to_index)

    assert info.value.kind is ErrorKind.INVALID_ARGUMENT
    assert store.snapshot() == before


def test_move_to_on_empty_pipeline_is_rejected():
    with pytest.raises(InvalidArgumentError):
        PipelineStore().move_to(0, 0)


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------

def test_replace_all_discards_existing_steps():
    store = _store("a", "b", "c")
    old_ids = {step.instance_id for step in store.snapshot()}

    fresh = store.replace_all(["data.normalize"])

    assert _tools(store) == ["data.normalize"]
    assert fresh[0].instance_id not in old_ids


def test_clear():
    store = _store("a", "b")
    store.clear()
    assert store.snapshot() == []


def test_snapshot_is_detached_from_store():
    store = _store("a")
    snapshot = store.snapshot()
    store.append("b")
    assert len(snapshot) == 1


def test_concurrent_appends_are_not_lost():
    store = PipelineStore()

    def worker():
        for _ in range(200):
            store.append("matrix.add")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 800
