"""Tests for URL scorers."""
import math

import pytest

from mdcrawl.deepcrawl.scorers import (
    CompositeUrlScorer,
    KeywordUrlScorer,
    UrlScoreContext,
    UrlScorer,
    resolve_score,
)


CTX = UrlScoreContext(depth=1, parent_url="https://example.com/")


class TestKeywordUrlScorer:

    def test_satisfies_protocol(self):
        assert isinstance(KeywordUrlScorer(["a"]), UrlScorer)

    def test_counts_keywords_in_url_and_anchor(self):
        scorer = KeywordUrlScorer(["Python", " guide ", ""])
        ctx = UrlScoreContext(depth=1, anchor_text="The Guide")
        assert scorer.keywords == ["python", "guide"]
        assert scorer.score("https://example.com/python/intro", ctx) == 2
        assert scorer.score("https://example.com/other", CTX) == 0

    def test_weight(self):
        scorer = KeywordUrlScorer(["docs"], weight=2.5)
        assert scorer.score("https://example.com/docs", CTX) == 2.5

    @pytest.mark.parametrize("weight", [math.nan, math.inf, "heavy"])
    def test_invalid_weight_defaults_to_one(self, weight):
        assert KeywordUrlScorer(["docs"], weight=weight).weight == 1.0

    def test_no_keywords_scores_zero(self):
        assert KeywordUrlScorer([]).score("https://example.com/anything", CTX) == 0


class TestCompositeUrlScorer:

    def test_sums_children(self):
        scorer = CompositeUrlScorer([KeywordUrlScorer(["docs"]), KeywordUrlScorer(["api"], 3)])
        assert scorer.score("https://example.com/docs/api", CTX) == 4

    @pytest.mark.asyncio
    async def test_async_children(self):
        class AsyncScorer:
            async def score(self, url, context):
                return 1.5

        scorer = CompositeUrlScorer([AsyncScorer(), KeywordUrlScorer(["docs"])])
        assert await resolve_score(scorer, "https://example.com/docs", CTX) == 2.5


class TestCompositeFailures:

    @pytest.mark.asyncio
    async def test_failing_async_child_stops_later_children(self):
        calls = []

        class Failing:
            async def score(self, url, context):
                raise RuntimeError("scorer down")

        class Recording:
            async def score(self, url, context):
                calls.append(url)
                return 1.0

        scorer = CompositeUrlScorer([Failing(), Recording()])
        with pytest.raises(RuntimeError, match="scorer down"):
            await resolve_score(scorer, "https://example.com/", CTX)
        assert calls == []

    def test_failing_sync_child_creates_no_coroutines(self):
        created = []

        class Failing:
            def score(self, url, context):
                raise RuntimeError("scorer down")

        class Lazy:
            def score(self, url, context):
                created.append(url)
                return self._score()

            async def _score(self):
                return 1.0

        with pytest.raises(RuntimeError):
            CompositeUrlScorer([Failing(), Lazy()]).score("https://example.com/", CTX)
        assert created == []

    def test_all_sync_children_return_number(self):
        scorer = CompositeUrlScorer([KeywordUrlScorer(["docs"]), KeywordUrlScorer(["api"])])
        assert scorer.score("https://example.com/docs", CTX) == 1.0


class TestResolveScore:

    @pytest.mark.asyncio
    async def test_no_scorer_is_zero(self):
        assert await resolve_score(None, "https://example.com/", CTX) == 0.0
