import pytest
from google.api_core.exceptions import AlreadyExists, NotFound

from app.config.mock_firestore import DESCENDING, MockFirestore


@pytest.fixture
def store():
    return MockFirestore()


def test_create_refuses_existing_document(store):
    ref = store.collection("things").document("a")
    ref.create({"n": 1})

    with pytest.raises(AlreadyExists):
        ref.create({"n": 2})
    assert ref.get().to_dict() == {"n": 1}


def test_update_requires_document(store):
    with pytest.raises(NotFound):
        store.collection("things").document("missing").update({"n": 1})


def test_documents_are_copied(store):
    data = {"tags": ["a"]}
    ref = store.collection("things").document("a")
    ref.set(data)
    data["tags"].append("b")

    snapshot = ref.get().to_dict()
    snapshot["tags"].append("c")

    assert ref.get().to_dict() == {"tags": ["a"]}


def test_multi_key_ordering_and_window(store):
    things = store.collection("things")
    for doc_id, rank, score in [("a", 1, 5), ("b", 2, 1), ("c", 1, 9), ("d", 2, 3)]:
        things.document(doc_id).set({"rank": rank, "score": score})

    query = things.order_by("rank", direction=DESCENDING).order_by("score", direction=DESCENDING)

    assert [d.id for d in query.stream()] == ["d", "b", "c", "a"]
    assert [d.id for d in query.offset(1).limit(2).stream()] == ["b", "c"]
    assert query.offset(1).limit(2).count(alias="total").get()[0][0].value == 4


def test_order_by_drops_documents_without_field(store):
    things = store.collection("things")
    things.document("a").set({"rank": 1})
    things.document("b").set({})

    assert [d.id for d in things.order_by("rank").stream()] == ["a"]


def test_filters(store):
    things = store.collection("things")
    things.document("a").set({"tags": ["x", "y"], "n": 3})
    things.document("b").set({"tags": ["y"], "n": 7})

    assert [d.id for d in things.where("tags", "array_contains", "x").stream()] == ["a"]
    assert [d.id for d in things.where("n", ">=", 5).stream()] == ["b"]
    assert [d.id for d in things.where("n", "in", [3, 7]).where("n", "<", 5).stream()] == ["a"]
