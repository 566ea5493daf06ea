import pytest

from conftest import FakeEmbedder
from ragchat_server.core.errors import NoViableInputError
from ragchat_server.rag.ingestion import IngestionPipeline, split_markdown, viable_sections


LONG_A = "Acme sells rocket-powered roller skates and portable holes to coyotes everywhere."
LONG_B = "Orders ship within two business days from our warehouse in the Arizona desert."


def test_split_markdown_titles_and_content():
    sections = split_markdown(f"## Products\n{LONG_A}\n\n## Shipping\n{LONG_B}\n")

    assert [(s.title, s.text) for s in sections] == [
        ("Products", LONG_A),
        ("Shipping", LONG_B),
    ]


def test_split_markdown_keeps_preamble_as_section():
    sections = split_markdown(f"Intro line\n{LONG_A}\n## Shipping\n{LONG_B}")
    assert [s.title for s in sections] == ["Intro line", "Shipping"]


def test_split_markdown_ignores_deeper_headers():
    sections = split_markdown(f"## Products\n### Skates\n{LONG_A}")
    assert len(sections) == 1
    assert sections[0].text.startswith("### Skates")


def test_short_sections_filtered():
    content = f"## Long\n{LONG_A}\n## Short\ntoo short\n"
    assert [s.title for s in viable_sections(content)] == ["Long"]


@pytest.mark.asyncio
async def test_two_sections_one_too_short_seeds_one_of_one(store, embedder):
    content = f"## Products\n{LONG_A}\n## Tiny\nten chars!\n"
    pipeline = IngestionPipeline(store, embedder)

    summary = await pipeline.ingest("acme", content, "You are the Acme agent.")

    assert (summary.seeded, summary.attempted) == (1, 1)
    assert "1/1" in summary.describe()
    assert [d.id for d in store.load("acme")] == ["acme-1"]
    assert embedder.calls == [LONG_A]


@pytest.mark.asyncio
async def test_no_viable_sections_raises_and_writes_nothing(store, embedder):
    pipeline = IngestionPipeline(store, embedder)

    with pytest.raises(NoViableInputError):
        await pipeline.ingest("acme", "## A\nshort\n## B\nalso short", "prompt")

    assert store.load_config("acme") is None
    assert embedder.calls == []


@pytest.mark.asyncio
async def test_partial_failure_is_summarized(store):
    embedder = FakeEmbedder(fail_on={LONG_B})
    pipeline = IngestionPipeline(store, embedder)

    summary = await pipeline.ingest("acme", f"## Products\n{LONG_A}\n## Shipping\n{LONG_B}", "prompt")

    assert (summary.seeded, summary.attempted) == (1, 2)
    assert [f.title for f in summary.failures] == ["Shipping"]
    assert "Errors:" in summary.describe()
    assert [d.id for d in store.load("acme")] == ["acme-1"]


@pytest.mark.asyncio
async def test_config_written_even_when_every_embedding_fails(store):
    pipeline = IngestionPipeline(store, FakeEmbedder(fail_all=True))

    summary = await pipeline.ingest("acme", f"## Products\n{LONG_A}", "You are the Acme agent.")

    assert summary.seeded == 0
    assert store.load_config("acme").system_prompt == "You are the Acme agent."
    assert store.load("acme") == []


@pytest.mark.asyncio
async def test_reingesting_same_content_is_idempotent(store, embedder):
    pipeline = IngestionPipeline(store, embedder)
    content = f"## Products\n{LONG_A}\n## Shipping\n{LONG_B}"

    await pipeline.ingest("acme", content, "prompt")
    await pipeline.ingest("acme", content, "prompt")

    assert [d.id for d in store.load("acme")] == ["acme-1", "acme-2"]


@pytest.mark.asyncio
async def test_ids_follow_filtered_positions(store, embedder):
    pipeline = IngestionPipeline(store, embedder)
    content = f"## Short\nnope\n## Products\n{LONG_A}\n## Shipping\n{LONG_B}"

    await pipeline.ingest("acme", content, "prompt")

    docs = store.load("acme")
    assert [(d.id, d.title) for d in docs] == [("acme-1", "Products"), ("acme-2", "Shipping")]
