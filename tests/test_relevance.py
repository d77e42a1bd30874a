from datetime import datetime, timezone

import pytest

from requirements_planner.core.errors import ContractError
from requirements_planner.core.io.load_resources import load_resources
from requirements_planner.core.knowledge.relevance import (
    find_relevant,
    generate_knowledge_context,
    query_terms,
    rank_resources,
    score,
    track_resource_usage,
)
from requirements_planner.core.model import KnowledgeResource


def _kb():
    return load_resources("examples/knowledge-resources.yaml")


def test_title_match_beats_content_match():
    resources = [
        KnowledgeResource(id="c", title="Misc notes", content="all about checkout flows"),
        KnowledgeResource(id="t", title="Checkout flows"),
    ]
    top = find_relevant(resources, "checkout", 2)
    assert [r.id for r in top] == ["t", "c"]


def test_storefront_ranking():
    ranked = rank_resources(_kb(), "checkout payments")
    assert [r.id for r, _ in ranked] == ["kb-1", "kb-2", "kb-3", "kb-4"]
    scores = [s for _, s in ranked]
    assert scores[0] == pytest.approx(9.2)
    assert scores[1] == pytest.approx(1.0)
    assert scores[2:] == [0.0, 0.0]


def test_limit_truncates_and_zero_scores_fill_remaining_slots():
    top = find_relevant(_kb(), "checkout payments", 3)
    assert [r.id for r in top] == ["kb-1", "kb-2", "kb-3"]


def test_empty_collection():
    assert find_relevant([], "anything", 5) == []


@pytest.mark.parametrize("limit", [0, -1, True, 2.5])
def test_invalid_limit_raises(limit):
    with pytest.raises(ContractError) as exc:
        find_relevant(_kb(), "checkout", limit)
    assert exc.value.code == "E_INVALID_LIMIT"


def test_blank_query_returns_nothing():
    assert find_relevant(_kb(), "", 5) == []
    assert find_relevant(_kb(), "   ", 5) == []
    assert score(_kb()[0], "  ") == 0.0


def test_ties_keep_collection_order():
    resources = [KnowledgeResource(id=f"r{i}", title="Deploy guide") for i in range(4)]
    assert [r.id for r in find_relevant(resources, "deploy", 4)] == ["r0", "r1", "r2", "r3"]


def test_results_are_copies():
    resources = _kb()
    top = find_relevant(resources, "checkout", 1)
    top[0].tags.append("mutated")
    assert "mutated" not in resources[0].tags


def test_usage_boost_is_capped_and_needs_a_match():
    busy = KnowledgeResource(id="b", title="Deploy guide", access_count=1000)
    quiet = KnowledgeResource(id="q", title="Deploy guide")
    assert score(busy, "deploy") - score(quiet, "deploy") == pytest.approx(0.5)
    assert score(busy, "kubernetes") == 0.0


def test_phrase_in_title_gets_bonus():
    r = KnowledgeResource(id="x", title="Product catalog schema")
    assert score(r, "product catalog") == pytest.approx(3 + 3 + 3)


def test_category_and_commerce_fields_count():
    kb3 = _kb()[2]
    assert score(kb3, "b2c") == pytest.approx(0.5)
    assert score(kb3, "design") == pytest.approx(1.5)


def test_query_terms_drop_stopwords_and_duplicates():
    assert query_terms("How to deploy the app and deploy it") == ["deploy", "app"]
    # all-stopword query still scores on the whole phrase
    assert score(KnowledgeResource(id="x", title="What is it"), "what is it") > 0


def test_track_resource_usage():
    resource = _kb()[0]
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    tracked = track_resource_usage(resource, now=now)
    assert tracked.access_count == 5
    assert tracked.last_accessed == "2024-05-01T12:00:00+00:00"
    assert resource.access_count == 4

    fresh = track_resource_usage(KnowledgeResource(id="n", title="New"), now=now)
    assert fresh.access_count == 1


def test_generate_knowledge_context():
    text = generate_knowledge_context(_kb()[:2])
    assert text.startswith("## Stripe checkout integration guide\nCategory: Payment Solutions")
    assert "Tags: payments, stripe, checkout" in text
    assert "Reference: https://stripe.com/docs/payments/checkout" in text
    assert "\n\n## Designing a product catalog schema" in text
    assert generate_knowledge_context([]) == ""
