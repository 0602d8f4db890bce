# tests/test_task_store.py

from __future__ import annotations

import threading

import pytest

from taskmgmt.core.errors import (
    ConcurrentModificationError,
    InvalidScopeError,
    InvalidStateError,
    NotFoundError,
    StorageError,
)
from taskmgmt.tasks.task_models import TaskFilter, TaskPriority, TaskSpec, TaskStatus
from taskmgmt.tasks.task_store import TaskStore

from .fakes import BrokenStorage


def _spec(**kw) -> TaskSpec:
    base = dict(content_path="/content/x", assignee="alice", priority=TaskPriority.HIGH)
    base.update(kw)
    return TaskSpec(**base)


def test_create_then_get_round_trip(store: TaskStore) -> None:
    created = store.create(
        "tasks",
        _spec(start_at=100.0, due_at=200.0, custom_properties={"k": "v"}, name="Review"),
    )
    assert created.status is TaskStatus.ACTIVE
    assert created.root_scope == "tasks"

    fetched = store.get("tasks", created.id)
    assert fetched == created
    assert fetched.custom_properties == {"k": "v"}
    assert fetched.schedulable


def test_ids_are_unique_within_root(store: TaskStore) -> None:
    ids = {store.create("tasks", _spec()).id for _ in range(25)}
    assert len(ids) == 25


def test_returned_task_is_a_copy(store: TaskStore) -> None:
    task = store.create("tasks", _spec(custom_properties={"a": "1"}))
    task.custom_properties["a"] = "changed"
    assert store.get("tasks", task.id).custom_properties == {"a": "1"}


def test_get_missing_raises_not_found(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.get("tasks", "nope")


@pytest.mark.parametrize(
    "scope",
    ["", "a//b", "tasks/", "/a/../b", "has space", None, "x" * 600],
)
def test_malformed_scope_is_rejected(store: TaskStore, scope) -> None:
    with pytest.raises(InvalidScopeError):
        store.create(scope, _spec())


def test_project_path_scope_is_accepted(store: TaskStore) -> None:
    root = "/content/projects/site/jcr:content/tasks"
    task = store.create(root, _spec())
    assert store.get(root, task.id).root_scope == root


def test_tasks_belong_to_exactly_one_root(store: TaskStore) -> None:
    a = store.create("project-a", _spec())
    store.create("project-b", _spec())

    with pytest.raises(NotFoundError):
        store.get("project-b", a.id)
    assert [t.id for t in store.list("project-a")] == [a.id]

    roots = {r.scope: r.task_count for r in store.roots()}
    assert roots == {"project-a": 1, "project-b": 1}


def test_update_applies_mutator(store: TaskStore) -> None:
    task = store.create("tasks", _spec())
    updated = store.update("tasks", task.id, lambda t: t.copy(assignee="bob"))
    assert updated.assignee == "bob"
    assert updated.updated_at >= task.updated_at
    assert store.get("tasks", task.id).assignee == "bob"


def test_update_missing_raises_not_found(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.update("tasks", "missing", lambda t: t)


def test_update_rejects_changes_to_immutable_fields(store: TaskStore) -> None:
    task = store.create("tasks", _spec())
    with pytest.raises(InvalidStateError):
        store.update("tasks", task.id, lambda t: t.copy(content_path="/content/other"))
    assert store.get("tasks", task.id).content_path == "/content/x"


def test_update_follows_lifecycle_order(store: TaskStore) -> None:
    task = store.create("tasks", _spec())
    store.update("tasks", task.id, lambda t: t.copy(status=TaskStatus.COMPLETE))
    store.update("tasks", task.id, lambda t: t.copy(status="Archived"))
    assert store.get("tasks", task.id).status is TaskStatus.ARCHIVED


@pytest.mark.parametrize(
    "steps, target",
    [
        ((), TaskStatus.ARCHIVED),
        ((TaskStatus.COMPLETE,), TaskStatus.ACTIVE),
        ((TaskStatus.COMPLETE, TaskStatus.ARCHIVED), TaskStatus.ACTIVE),
        ((TaskStatus.COMPLETE, TaskStatus.ARCHIVED), TaskStatus.COMPLETE),
    ],
)
def test_update_rejects_status_regression_or_skip(store: TaskStore, steps, target) -> None:
    task = store.create("tasks", _spec())
    for status in steps:
        store.update("tasks", task.id, lambda t, s=status: t.copy(status=s))
    before = store.get("tasks", task.id)

    with pytest.raises(InvalidStateError):
        store.update("tasks", task.id, lambda t: t.copy(status=target))
    assert store.get("tasks", task.id) == before


def test_update_aborted_by_mutator_writes_nothing(store: TaskStore) -> None:
    task = store.create("tasks", _spec())

    def boom(t):
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        store.update("tasks", task.id, boom)
    assert store.get("tasks", task.id) == task


def test_concurrent_updates_exactly_one_wins(store: TaskStore) -> None:
    task = store.create("tasks", _spec())
    barrier = threading.Barrier(2, timeout=10)
    outcomes: dict[str, object] = {}

    def worker(name: str) -> None:
        def mutator(t):
            # Both workers have read the same version before either writes.
            barrier.wait()
            return t.copy(assignee=name)

        try:
            outcomes[name] = store.update("tasks", task.id, mutator)
        except ConcurrentModificationError as e:
            outcomes[name] = e

    threads = [threading.Thread(target=worker, args=(n,)) for n in ("bob", "carol")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=20)

    errors = [v for v in outcomes.values() if isinstance(v, ConcurrentModificationError)]
    winners = [k for k, v in outcomes.items() if not isinstance(v, Exception)]
    assert len(errors) == 1
    assert len(winners) == 1
    assert store.get("tasks", task.id).assignee == winners[0]


def test_list_is_lazy_and_restartable(store: TaskStore) -> None:
    listing = store.list("tasks")
    assert list(listing) == []

    first = store.create("tasks", _spec())
    assert [t.id for t in listing] == [first.id]

    second = store.create("tasks", _spec(assignee="bob"))
    assert [t.id for t in listing] == [first.id, second.id]
    assert [t.id for t in listing] == [first.id, second.id]


def test_list_filters(store: TaskStore) -> None:
    high = store.create("tasks", _spec())
    low = store.create("tasks", _spec(priority=TaskPriority.LOW, assignee="bob", due_at=5.0))
    store.update("tasks", low.id, lambda t: t.copy(status=TaskStatus.COMPLETE))

    def ids(f: TaskFilter) -> list[str]:
        return [t.id for t in store.list("tasks", f)]

    assert ids(TaskFilter(priority=TaskPriority.HIGH)) == [high.id]
    assert ids(TaskFilter(status=TaskStatus.COMPLETE)) == [low.id]
    assert ids(TaskFilter(assignee="alice")) == [high.id]
    assert ids(TaskFilter(schedulable=True)) == [low.id]
    assert ids(TaskFilter(assignee="bob", status=TaskStatus.ACTIVE)) == []


def test_storage_errors_propagate_unchanged() -> None:
    store = TaskStore(BrokenStorage())
    with pytest.raises(StorageError):
        store.create("tasks", _spec())
    with pytest.raises(StorageError):
        store.get("tasks", "x")
    with pytest.raises(StorageError):
        list(store.list("tasks"))


@pytest.mark.parametrize("raw_status", [None, "", "Paused"])
def test_corrupt_stored_status_surfaces(storage, raw_status) -> None:
    store = TaskStore(storage)
    task = store.create("tasks", _spec())
    rec = storage.read("tasks", task.id)
    storage.compare_and_set("tasks", task.id, rec.version, dict(rec.payload, status=raw_status))

    with pytest.raises(StorageError):
        store.get("tasks", task.id)
    with pytest.raises(StorageError):
        list(store.list("tasks"))
