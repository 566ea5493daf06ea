import json
from datetime import datetime, timezone

import pytest

from ragchat_server.core.errors import StorePersistenceError
from ragchat_server.store import Document, NamespaceConfig, cosine_similarity
from ragchat_server.store.paths import InvalidNamespaceError, sanitize_namespace


def make_doc(doc_id, embedding, content=None, title="Title"):
    return Document(
        id=doc_id,
        title=title,
        content=content or f"content of {doc_id}",
        embedding=embedding,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


class TestCosineSimilarity:

    def test_identical_vectors_score_one(self):
        assert cosine_similarity([0.3, -1.2, 4.0], [0.3, -1.2, 4.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors_score_zero(self):
        assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)

    def test_opposite_vectors_score_minus_one(self):
        assert cosine_similarity([1, 2], [-1, -2]) == pytest.approx(-1.0)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0
        assert cosine_similarity([1, 2, 3], [0, 0, 0]) == 0.0

    def test_mismatched_dimensions_score_zero(self):
        assert cosine_similarity([1, 0], [1, 0, 0]) == 0.0

    def test_empty_vectors_score_zero(self):
        assert cosine_similarity([], []) == 0.0

    def test_non_numeric_values_score_zero(self):
        assert cosine_similarity(["a", "b"], [1, 2]) == 0.0


class TestNamespaceSanitizing:

    def test_unsafe_characters_replaced(self):
        assert sanitize_namespace("my site/acme!") == "my_site_acme_"

    def test_dots_and_hyphens_kept(self):
        assert sanitize_namespace("docs.acme-corp.com") == "docs.acme-corp.com"

    def test_dot_only_names_rejected(self):
        with pytest.raises(InvalidNamespaceError):
            sanitize_namespace("..")

    def test_empty_name_rejected(self):
        with pytest.raises(InvalidNamespaceError):
            sanitize_namespace("")


class TestDocuments:

    def test_load_missing_namespace_returns_empty(self, store):
        assert store.load("nothing-here") == []

    def test_save_then_load_round_trip(self, store):
        docs = [make_doc("a-1", [1.0, 0.0]), make_doc("a-2", [0.0, 1.0]), make_doc("a-3", [0.5, 0.5])]
        store.save("acme", docs)
        assert store.load("acme") == docs

    def test_persisted_layout_uses_camel_case(self, store):
        store.save("acme", [make_doc("a-1", [1.0, 2.0])])
        raw = json.loads((store.root / "acme" / "vectors.json").read_text(encoding="utf-8"))
        assert raw == [
            {
                "id": "a-1",
                "title": "Title",
                "content": "content of a-1",
                "embedding": [1.0, 2.0],
                "createdAt": "2025-01-01T00:00:00Z",
            }
        ]

    def test_save_leaves_no_temp_files(self, store):
        store.save("acme", [make_doc("a-1", [1.0])])
        store.save("acme", [make_doc("a-2", [1.0])])
        assert sorted(p.name for p in (store.root / "acme").iterdir()) == ["vectors.json"]

    def test_upsert_new_id_appends(self, store):
        store.upsert("acme", make_doc("a-1", [1.0, 0.0]))
        store.upsert("acme", make_doc("a-2", [0.0, 1.0]))
        assert [d.id for d in store.load("acme")] == ["a-1", "a-2"]

    def test_upsert_existing_id_replaces_in_place(self, store):
        store.save("acme", [make_doc("a-1", [1.0, 0.0]), make_doc("a-2", [0.0, 1.0])])

        store.upsert("acme", make_doc("a-1", [0.5, 0.5], content="replacement"))

        docs = store.load("acme")
        assert len(docs) == 2
        assert [d.id for d in docs] == ["a-1", "a-2"]
        assert docs[0].content == "replacement"

    def test_corrupt_vectors_file_raises(self, store):
        (store.root / "acme").mkdir(parents=True)
        (store.root / "acme" / "vectors.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StorePersistenceError):
            store.load("acme")

    def test_namespaces_are_isolated(self, store):
        store.upsert("one", make_doc("x", [1.0]))
        store.upsert("two", make_doc("x", [1.0]))
        store.upsert("two", make_doc("y", [1.0]))
        assert store.count("one") == 1
        assert store.count("two") == 2


class TestSearch:

    def test_returns_only_matches_above_floor(self, store):
        store.save("acme", [make_doc("first", [1.0, 0.0]), make_doc("second", [0.0, 1.0])])

        results = store.search("acme", [1.0, 0.0], k=3, min_score=0.3)

        assert [r.id for r in results] == ["first"]
        assert results[0].score == pytest.approx(1.0)

    def test_results_sorted_non_increasing(self, store):
        store.save(
            "acme",
            [
                make_doc("low", [0.6, 0.8]),
                make_doc("high", [1.0, 0.05]),
                make_doc("mid", [0.8, 0.6]),
                make_doc("neg", [-1.0, 0.0]),
            ],
        )

        results = store.search("acme", [1.0, 0.0], k=10, min_score=-1.0)
        scores = [r.score for r in results]

        assert scores == sorted(scores, reverse=True)
        assert [r.id for r in results] == ["high", "mid", "low", "neg"]

    def test_truncates_to_k(self, store):
        store.save("acme", [make_doc(f"d{i}", [1.0, 0.0]) for i in range(5)])
        assert len(store.search("acme", [1.0, 0.0], k=3)) == 3

    def test_ties_keep_insertion_order(self, store):
        store.save("acme", [make_doc("b", [2.0, 0.0]), make_doc("a", [1.0, 0.0]), make_doc("c", [3.0, 0.0])])
        results = store.search("acme", [1.0, 0.0], k=3)
        assert [r.id for r in results] == ["b", "a", "c"]

    def test_mismatched_dimension_documents_score_zero(self, store):
        store.save("acme", [make_doc("good", [1.0, 0.0]), make_doc("bad", [1.0, 0.0, 0.0])])
        results = store.search("acme", [1.0, 0.0], k=3, min_score=0.0)
        assert [(r.id, r.score) for r in results] == [("good", pytest.approx(1.0)), ("bad", 0.0)]

    def test_empty_namespace_returns_empty(self, store):
        store.save_config(NamespaceConfig(namespace="acme", system_prompt="Be helpful."))
        assert store.search("acme", [1.0, 0.0]) == []

    def test_non_positive_k_returns_empty(self, store):
        store.save("acme", [make_doc("first", [1.0, 0.0])])
        assert store.search("acme", [1.0, 0.0], k=0) == []


class TestConfig:

    def test_load_missing_config_returns_none(self, store):
        assert store.load_config("acme") is None

    def test_config_round_trip(self, store):
        config = NamespaceConfig(namespace="acme", system_prompt="You are the Acme agent.")
        store.save_config(config)
        assert store.load_config("acme") == config

    def test_unknown_config_keys_ignored(self, store):
        (store.root / "acme").mkdir(parents=True)
        (store.root / "acme" / "config.json").write_text(
            json.dumps(
                {
                    "namespace": "acme",
                    "systemPrompt": "Hi",
                    "createdAt": "2025-01-01T00:00:00Z",
                    "llmModel": "something",
                }
            ),
            encoding="utf-8",
        )

        config = store.load_config("acme")
        assert config.system_prompt == "Hi"

        store.save_config(config)
        raw = json.loads((store.root / "acme" / "config.json").read_text(encoding="utf-8"))
        assert set(raw) == {"namespace", "systemPrompt", "createdAt"}


class TestListAndDelete:

    def test_list_empty_root(self, store):
        assert store.list() == []

    def test_list_reports_counts_and_config(self, store):
        store.save_config(NamespaceConfig(namespace="acme.com", system_prompt="Hi"))
        store.upsert("acme.com", make_doc("acme.com-1", [1.0]))
        store.upsert("orphan", make_doc("orphan-1", [1.0]))

        by_name = {s.namespace: s for s in store.list()}

        assert by_name["acme.com"].document_count == 1
        assert by_name["acme.com"].created_at is not None
        assert by_name["orphan"].document_count == 1
        assert by_name["orphan"].created_at is None

    def test_delete_removes_config_and_documents(self, store):
        store.save_config(NamespaceConfig(namespace="acme", system_prompt="Hi"))
        store.upsert("acme", make_doc("acme-1", [1.0]))

        assert store.delete("acme") is True

        assert store.load_config("acme") is None
        assert store.load("acme") == []
        assert store.list() == []

    def test_delete_is_idempotent(self, store):
        assert store.delete("never-existed") is False
        assert store.delete("never-existed") is False


class TestConcurrentUpserts:

    def test_parallel_upserts_into_one_namespace_are_all_kept(self, store):
        from concurrent.futures import ThreadPoolExecutor

        total = 40
        docs = [make_doc(f"acme-{i}", [1.0, float(i)]) for i in range(total)]

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(lambda d: store.upsert("acme", d), docs))

        assert store.count("acme") == total
        assert {d.id for d in store.load("acme")} == {d.id for d in docs}
