"""Tests for citation / similarity graph expansion."""

from __future__ import annotations

import pytest
from fakes import FakeGraph, make_document

from clio_rag.exceptions import EmbeddingUnavailable, GraphExpansionFailure
from clio_rag.models.domain import RetrievedPassage, SimilarDocument
from clio_rag.retrieval.graph_expansion import GraphExpander, cosine_similarity


def _passage(doc_id: str) -> RetrievedPassage:
    return RetrievedPassage(
        passage_id=f"{doc_id}-c1",
        document_id=doc_id,
        content="chunk",
        page_number=1,
        similarity=0.02,
        document=make_document(doc_id),
    )


def _graph(**kwargs) -> FakeGraph:
    documents = {
        doc_id: make_document(doc_id, summary=f"Summary of {doc_id}.")
        for doc_id in ("a", "b", "c", "d", "e", "f")
    }
    return FakeGraph(documents=documents, **kwargs)


def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0


async def test_expansion_excludes_original_documents():
    graph = _graph(
        cited_by={"a": ["b", "c"]},
        citing={"a": ["a", "d"], "b": ["a"]},
        similar={"a": [SimilarDocument("b", 0.9), SimilarDocument("e", 0.8)]},
    )
    expansion = await GraphExpander(graph).expand("q", [_passage("a"), _passage("b")], limit=3)

    related = {d.document_id for d in expansion.related_documents}
    assert related == {"c", "d", "e"}
    assert not related & {"a", "b"}
    assert all(p.is_graph_expansion for p in expansion.passages)


async def test_categories_are_capped():
    graph = _graph(cited_by={"a": ["b", "c", "d"]}, citing={"a": ["e", "f"]})
    expansion = await GraphExpander(graph).expand("q", [_passage("a")], limit=3)
    # ceil(3 / 2) = 2 per citation direction
    assert [d.document_id for d in expansion.related_documents] == ["b", "c", "e", "f"]


async def test_similar_documents_use_threshold_and_limit():
    graph = _graph(similar={"a": [SimilarDocument("b", 0.95), SimilarDocument("c", 0.5)]})
    expansion = await GraphExpander(graph, similarity_threshold=0.7).expand(
        "q", [_passage("a")], limit=4
    )
    assert graph.similar_calls == [("a", 0.7, 4)]
    assert [d.document_id for d in expansion.related_documents] == ["b"]


async def test_cycles_terminate_with_depth_cap():
    graph = _graph(cited_by={"a": ["b"], "b": ["c"], "c": ["a"]})
    expansion = await GraphExpander(graph, max_depth=5).expand("q", [_passage("a")], limit=2)
    assert [d.document_id for d in expansion.related_documents] == ["b", "c"]


async def test_total_related_is_capped():
    graph = _graph(cited_by={"a": ["b", "c"]}, citing={"a": ["d", "e"]})
    expansion = await GraphExpander(graph, max_related=3).expand("q", [_passage("a")], limit=4)
    assert len(expansion.related_documents) == 3


async def test_measured_similarity_from_embeddings():
    vectors = {"q": [1.0, 0.0], "Summary of b.": [1.0, 0.0]}

    async def embed(text: str) -> list[float]:
        return vectors[text]

    graph = _graph(cited_by={"a": ["b"]})
    expansion = await GraphExpander(graph, embed=embed).expand("q", [_passage("a")])
    assert expansion.passages[0].similarity == pytest.approx(1.0)
    assert expansion.passages[0].passage_id == "summary:b"


async def test_orthogonal_summary_scores_above_uncertain():
    vectors = {"q": [1.0, 0.0], "Summary of b.": [0.0, 1.0]}

    async def embed(text: str) -> list[float]:
        return vectors[text]

    graph = _graph(cited_by={"a": ["b"]})
    expansion = await GraphExpander(graph, embed=embed).expand("q", [_passage("a")])
    assert expansion.passages[0].similarity == pytest.approx(0.001)


async def test_uncertain_similarity_without_embeddings():
    async def embed(text: str) -> list[float]:
        raise EmbeddingUnavailable()

    graph = _graph(cited_by={"a": ["b"]})
    expansion = await GraphExpander(graph, embed=embed).expand("q", [_passage("a")])
    assert expansion.passages[0].similarity == 0.0


async def test_unexpected_embedder_error_leaves_similarity_unmeasured():
    async def embed(text: str) -> list[float]:
        raise ValueError("Expecting value: line 1 column 1 (char 0)")

    graph = _graph(cited_by={"a": ["b"]})
    expansion = await GraphExpander(graph, embed=embed).expand("q", [_passage("a")])
    assert [p.document_id for p in expansion.passages] == ["b"]
    assert expansion.passages[0].similarity == 0.0


async def test_documents_without_summary_give_no_passage():
    graph = FakeGraph(documents={"b": make_document("b")}, cited_by={"a": ["b"]})
    expansion = await GraphExpander(graph).expand("q", [_passage("a")])
    assert len(expansion.related_documents) == 1
    assert expansion.passages == []


async def test_graph_failure_raises_expansion_failure():
    with pytest.raises(GraphExpansionFailure, match="locked"):
        await GraphExpander(_graph(fail=True)).expand("q", [_passage("a")])


async def test_nothing_to_expand():
    expansion = await GraphExpander(_graph(fail=True)).expand("q", [])
    assert expansion.related_documents == []
