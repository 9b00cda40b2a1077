"""Tests for CrawlGraph state handling and checkpoint restore."""
import json
import math

from mdcrawl.deepcrawl.crawl_graph import (
    CrawlGraph,
    CrawlNode,
    CrawlStats,
    QueueItem,
    StateSnapshot,
)


SEED = "https://example.com/"


def _graph(max_depth: int = 3, max_pages: int = 10) -> CrawlGraph:
    return CrawlGraph(SEED, max_depth=max_depth, max_pages=max_pages)


class TestFreshRestore:

    def test_seed_only(self):
        graph = _graph()
        frontier = graph.restore()
        assert frontier == [QueueItem(url=SEED, depth=0, score=0.0)]
        assert graph.visited == {SEED}
        assert graph.enqueued_pages == 1
        assert graph.seed_host == "example.com"


class TestResumeRestore:

    def test_nan_depth_clamped_to_zero(self):
        graph = _graph()
        state = StateSnapshot(frontier=[QueueItem(url="https://example.com/a", depth=math.nan)])
        frontier = graph.restore(state)
        assert frontier[0].depth == 0

    def test_depth_clamped_to_max_depth(self):
        graph = _graph(max_depth=2)
        state = StateSnapshot(
            frontier=[
                QueueItem(url="https://example.com/deep", depth=9),
                QueueItem(url="https://example.com/neg", depth=-4),
                QueueItem(url="https://example.com/frac", depth=1.7),
            ]
        )
        depths = [item.depth for item in graph.restore(state)]
        assert depths == [2, 0, 1]

    def test_invalid_frontier_urls_dropped(self):
        graph = _graph()
        state = StateSnapshot(
            frontier=[
                QueueItem(url="not-a-url"),
                QueueItem(url="mailto:a@example.com"),
                QueueItem(url="https://example.com/ok#frag", score=math.inf, anchor_text="  "),
            ]
        )
        frontier = graph.restore(state)
        assert len(frontier) == 1
        assert frontier[0].url == "https://example.com/ok"
        assert frontier[0].score == 0.0
        assert frontier[0].anchor_text is None

    def test_invalid_result_urls_dropped(self):
        graph = _graph()
        state = StateSnapshot(
            results=[
                CrawlNode(url="not-a-url", depth=0, score=0, success=True),
                CrawlNode(url="https://example.com/good", depth=1, score=0, success=True),
            ],
        )
        graph.restore(state)
        assert [node.url for node in graph.results] == ["https://example.com/good"]
        assert "not-a-url" not in graph.visited

    def test_results_truncated_to_max_pages(self):
        graph = _graph(max_pages=2)
        state = StateSnapshot(
            results=[
                CrawlNode(url=f"https://example.com/{i}", depth=1, score=0, success=True)
                for i in range(5)
            ],
        )
        graph.restore(state)
        assert len(graph.results) == 2
        assert graph.budget_exhausted

    def test_visited_is_union(self):
        graph = _graph()
        state = StateSnapshot(
            frontier=[QueueItem(url="https://example.com/f", depth=1)],
            visited=["https://example.com/v", "garbage"],
            results=[CrawlNode(url="https://example.com/r", depth=1, score=0, success=True)],
        )
        graph.restore(state)
        assert graph.visited == {
            SEED,
            "https://example.com/f",
            "https://example.com/v",
            "https://example.com/r",
        }

    def test_empty_state_reseeds(self):
        graph = _graph()
        frontier = graph.restore(StateSnapshot(visited=["https://example.com/x"]))
        assert [item.url for item in frontier] == [SEED]
        assert frontier[0].depth == 0

    def test_enqueued_never_regresses(self):
        graph = _graph()
        state = StateSnapshot(
            frontier=[QueueItem(url="https://example.com/a", depth=1)],
            visited=["https://example.com/b", "https://example.com/c"],
            enqueued_pages=0,
        )
        graph.restore(state)
        # visited = seed, a, b, c
        assert graph.enqueued_pages == 4

    def test_enqueued_keeps_larger_provided_value(self):
        graph = _graph()
        state = StateSnapshot(
            frontier=[QueueItem(url="https://example.com/a", depth=1)],
            enqueued_pages=17.9,
        )
        graph.restore(state)
        assert graph.enqueued_pages == 17

    def test_enqueued_non_finite_ignored(self):
        graph = _graph()
        state = StateSnapshot(
            frontier=[QueueItem(url="https://example.com/a", depth=1)],
            enqueued_pages=math.nan,
        )
        graph.restore(state)
        assert graph.enqueued_pages == 2


class TestSnapshot:

    def test_snapshot_is_deep_copy(self):
        graph = _graph()
        frontier = graph.restore()
        snap = graph.snapshot(frontier, completed=False)
        snap.frontier[0].score = 99
        snap.visited.append("https://example.com/zzz")
        assert frontier[0].score == 0.0
        assert "https://example.com/zzz" not in graph.visited

    def test_visited_sorted(self):
        graph = _graph()
        graph.restore()
        graph.claim("https://example.com/b")
        graph.claim("https://example.com/a")
        snap = graph.snapshot([], completed=True)
        assert snap.visited == sorted(snap.visited)
        assert snap.enqueued_pages == 3
        assert snap.completed is True

    def test_round_trip_through_json(self):
        graph = _graph()
        graph.restore()
        graph.record(CrawlNode(url=SEED, depth=0, score=math.inf, success=True, title="Home"))
        graph.claim("https://example.com/a")
        snap = graph.snapshot(
            [QueueItem(url="https://example.com/a", depth=1, score=2.0, parent_url=SEED, anchor_text="A")],
            completed=False,
        )
        data = json.loads(json.dumps(snap.to_dict(), allow_nan=True))
        restored = StateSnapshot.from_dict(data)
        assert restored.frontier[0].anchor_text == "A"
        assert restored.results[0].title == "Home"
        # infinite scores do not survive the restore
        assert restored.results[0].score == 0.0
        assert restored.enqueued_pages == 2


class TestFromDict:

    def test_tolerates_garbage(self):
        snap = StateSnapshot.from_dict(
            {
                "frontier": [None, "x", {"url": "https://example.com/a", "depth": "deep"}],
                "visited": ["https://example.com/a", 3, None],
                "results": [{"url": "not-a-url", "success": "yes"}],
                "enqueued_pages": "many",
                "completed": "true",
            }
        )
        assert len(snap.frontier) == 1
        assert math.isnan(snap.frontier[0].depth)
        assert snap.visited == ["https://example.com/a"]
        assert snap.results[0].success is False
        assert math.isnan(snap.enqueued_pages)
        assert snap.completed is False

    def test_non_mapping_is_empty(self):
        snap = StateSnapshot.from_dict(["not", "a", "dict"])
        assert snap.frontier == [] and snap.results == []


class TestStats:

    def test_stats_invariant(self):
        results = [
            CrawlNode(url="https://example.com/1", depth=0, score=0, success=True),
            CrawlNode(url="https://example.com/2", depth=1, score=0, success=False, error="x"),
            CrawlNode(url="https://example.com/3", depth=1, score=0, success=True),
        ]
        stats = CrawlStats.from_results(results, {"a", "b", "c", "d"}, 4)
        assert stats.succeeded_pages == 2
        assert stats.failed_pages == 1
        assert stats.succeeded_pages + stats.failed_pages == stats.crawled_pages == 3
        assert stats.visited_pages == 4
        assert stats.to_dict()["enqueued_pages"] == 4
