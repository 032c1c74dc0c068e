import uuid

import pytest

from taskspace.workspace.errors import Conflict, Forbidden, InvalidRequest, ResourceNotFound
from taskspace.workspace.models import Section
from taskspace.workspace.ordering import OrderedResourceStore


def _seed(store, workspace, count, list_id=None):
    list_id = list_id or uuid.uuid4()
    creator = uuid.uuid4()
    sections = [
        store.create(workspace.id, list_id, {"title": f"S{i}"}, creator) for i in range(count)
    ]
    return list_id, sections


def _keys(store, list_id):
    return [(s.title, s.order_key) for s in store.list_for_parent(list_id)]


def _fresh(database, resource_id) -> Section:
    other = database.session()
    try:
        return other.get(Section, resource_id)
    finally:
        other.close()


def test_create_appends_after_last_sibling(session, workspace):
    store = OrderedResourceStore(session)
    list_id, sections = _seed(store, workspace, 3)

    assert [s.order_key for s in sections] == [0, 1, 2]

    store.delete(sections[1].id)
    appended = store.create(workspace.id, list_id, {"title": "S3"}, uuid.uuid4())
    assert appended.order_key == 3


@pytest.mark.parametrize("fields", [{}, {"title": "   "}, {"description": "no title"}])
def test_create_requires_title(session, workspace, fields):
    with pytest.raises(InvalidRequest):
        OrderedResourceStore(session).create(workspace.id, uuid.uuid4(), fields, uuid.uuid4())


@pytest.mark.parametrize(
    "extra",
    [{}, {"order_key": 0}, {"order_key": 42}, {"order_key": -5, "id": "ignored"}],
    ids=["no-key", "stale-key", "arbitrary-key", "negative-key-and-id"],
)
def test_update_never_changes_order_key(session, workspace, extra):
    store = OrderedResourceStore(session)
    _, sections = _seed(store, workspace, 3)
    target = sections[2]

    updated = store.update(target.id, {"title": "Renamed", **extra})

    assert updated.id == target.id
    assert updated.order_key == 2
    assert updated.title == "Renamed"


def test_update_keeps_position_set_by_concurrent_move(database, workspace):
    session_a, session_b = database.session(), database.session()
    try:
        store_a, store_b = OrderedResourceStore(session_a), OrderedResourceStore(session_b)
        _, sections = _seed(store_a, workspace, 8)
        r1 = sections[3]
        assert (r1.order_key, r1.title) == (3, "S3")

        # Client A reads R1, client B moves it to position 7.
        snapshot = store_a.get(r1.id)
        stale_key = snapshot.order_key
        store_b.move(r1.id, 7)

        updated = store_a.update(r1.id, {"title": "B", "order_key": stale_key})

        assert (updated.order_key, updated.title) == (7, "B")
        persisted = _fresh(database, r1.id)
        assert (persisted.order_key, persisted.title) == (7, "B")
    finally:
        session_a.close()
        session_b.close()


def test_disjoint_updates_from_two_sessions_both_apply(database, workspace):
    session_a, session_b = database.session(), database.session()
    try:
        store_a, store_b = OrderedResourceStore(session_a), OrderedResourceStore(session_b)
        _, sections = _seed(store_a, workspace, 2)
        target = sections[1]
        store_b.get(target.id)

        store_a.update(target.id, {"title": "From A"})
        store_b.update(target.id, {"description": "From B"})

        persisted = _fresh(database, target.id)
        assert persisted.title == "From A"
        assert persisted.description == "From B"
        assert persisted.order_key == 1
    finally:
        session_a.close()
        session_b.close()


def test_failing_guard_leaves_row_unchanged(database, session, workspace):
    store = OrderedResourceStore(session)
    _, sections = _seed(store, workspace, 1)

    def deny(_workspace_id):
        raise Forbidden("nope")

    with pytest.raises(Forbidden):
        store.update(sections[0].id, {"title": "Changed"}, guard=deny)

    assert _fresh(database, sections[0].id).title == "S0"


def test_update_rejects_blank_title_and_unknown_resource(session, workspace):
    store = OrderedResourceStore(session)
    _, sections = _seed(store, workspace, 1)

    with pytest.raises(InvalidRequest):
        store.update(sections[0].id, {"title": ""})
    with pytest.raises(ResourceNotFound):
        store.update(uuid.uuid4(), {"title": "x"})


def test_update_merges_properties(session, workspace):
    store = OrderedResourceStore(session)
    _, sections = _seed(store, workspace, 1)

    store.update(sections[0].id, {"properties": {"color": "red"}})
    updated = store.update(sections[0].id, {"description": "Notes"})

    assert updated.properties == {"color": "red"}
    assert updated.description == "Notes"


def test_move_renumbers_siblings(session, workspace):
    store = OrderedResourceStore(session)
    list_id, sections = _seed(store, workspace, 4)

    store.move(sections[0].id, 2)

    assert _keys(store, list_id) == [("S1", 0), ("S2", 1), ("S0", 2), ("S3", 3)]


def test_move_past_end_clamps_and_negative_position_fails(session, workspace):
    store = OrderedResourceStore(session)
    list_id, sections = _seed(store, workspace, 3)

    store.move(sections[0].id, 99)
    assert _keys(store, list_id) == [("S1", 0), ("S2", 1), ("S0", 2)]

    with pytest.raises(InvalidRequest):
        store.move(sections[1].id, -1)


def test_move_closes_gaps_left_by_delete(session, workspace):
    store = OrderedResourceStore(session)
    list_id, sections = _seed(store, workspace, 3)
    store.delete(sections[1].id)
    assert _keys(store, list_id) == [("S0", 0), ("S2", 2)]

    store.move(sections[2].id, 0)

    assert _keys(store, list_id) == [("S2", 0), ("S0", 1)]


def test_reorder_applies_permutation(session, workspace):
    store = OrderedResourceStore(session)
    list_id, sections = _seed(store, workspace, 3)

    store.reorder(list_id, [s.id for s in reversed(sections)])

    assert _keys(store, list_id) == [("S2", 0), ("S1", 1), ("S0", 2)]


def test_reorder_rejects_partial_or_duplicate_ids(session, workspace):
    store = OrderedResourceStore(session)
    list_id, sections = _seed(store, workspace, 3)
    ids = [s.id for s in sections]

    for bad in (ids[:2], ids + [ids[0]], ids[:2] + [uuid.uuid4()]):
        with pytest.raises(InvalidRequest):
            store.reorder(list_id, bad)

    assert _keys(store, list_id) == [("S0", 0), ("S1", 1), ("S2", 2)]
    with pytest.raises(ResourceNotFound):
        store.reorder(uuid.uuid4(), ids)


def test_create_rejects_list_of_other_workspace(session, workspace):
    from taskspace.workspace.models import Workspace

    store = OrderedResourceStore(session)
    list_id, _ = _seed(store, workspace, 1)
    other = Workspace(name="Other", created_by=uuid.uuid4())
    session.add(other)
    session.commit()

    with pytest.raises(InvalidRequest):
        store.create(other.id, list_id, {"title": "Intruder"}, uuid.uuid4())


def test_delete_unknown_resource(session):
    with pytest.raises(ResourceNotFound):
        OrderedResourceStore(session).delete(uuid.uuid4())


def test_racing_creates_never_share_an_order_key(database, workspace, monkeypatch):
    session_a, session_b = database.session(), database.session()
    try:
        store_a, store_b = OrderedResourceStore(session_a), OrderedResourceStore(session_b)
        list_id, _ = _seed(store_a, workspace, 1)
        read_siblings = store_b._siblings

        def siblings_then_competing_insert(parent_list_id, *, lock=False):
            siblings = read_siblings(parent_list_id, lock=lock)
            store_a.create(workspace.id, list_id, {"title": "A"}, uuid.uuid4())
            return siblings

        monkeypatch.setattr(store_b, "_siblings", siblings_then_competing_insert)
        with pytest.raises(Conflict):
            store_b.create(workspace.id, list_id, {"title": "B"}, uuid.uuid4())
        monkeypatch.undo()

        retried = store_b.create(workspace.id, list_id, {"title": "B"}, uuid.uuid4())
        assert retried.order_key == 2
        assert _keys(store_a, list_id) == [("S0", 0), ("A", 1), ("B", 2)]
    finally:
        session_a.close()
        session_b.close()


def test_swapping_neighbours_respects_unique_keys(session, workspace):
    store = OrderedResourceStore(session)
    list_id, sections = _seed(store, workspace, 2)

    store.reorder(list_id, [sections[1].id, sections[0].id])
    store.move(sections[1].id, 1)

    assert _keys(store, list_id) == [("S0", 0), ("S1", 1)]
