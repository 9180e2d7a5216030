# tests/test_aggregator.py
"""Tests for result aggregation and run statistics."""

import pytest

from edgetrace.aggregator import ResultAggregator, results_to_dicts, summarize_results
from edgetrace.models import (
    AnalysisResult,
    ErrorDescriptor,
    FailureKind,
    Hop,
    NavigationState,
    ServerType,
)


def hop(url, status=301, server_type=ServerType.CDN):
    return Hop(url=url, status_code=status, server_type=server_type, elapsed_seconds=0.1)


def chain(url, servers, state=NavigationState.COMPLETED, failure=None):
    """Build a result whose hops carry the given server types."""
    hops = tuple(
        hop(f"{url}/{i}", 200 if i == len(servers) - 1 else 301, server)
        for i, server in enumerate(servers)
    )
    return AnalysisResult(
        original_url=url,
        final_url=hops[-1].url if hops else None,
        final_status_code=hops[-1].status_code if hops else None,
        hops=hops,
        total_elapsed_seconds=0.5,
        failure=failure,
        state=state,
    )


class TestResultAggregator:
    """Test suite for ResultAggregator."""

    def test_orders_by_index(self):
        """Test that results come back in original index order."""
        aggregator = ResultAggregator(expected=3)
        aggregator.add(2, chain("https://c.example", [ServerType.CDN]))
        aggregator.add(0, chain("https://a.example", [ServerType.CDN]))
        aggregator.add(1, chain("https://b.example", [ServerType.CDN]))

        assert [r.original_url for r in aggregator.results()] == [
            "https://a.example",
            "https://b.example",
            "https://c.example",
        ]
        assert aggregator.is_complete

    def test_extend(self):
        """Test storing consecutive results from an offset."""
        aggregator = ResultAggregator(expected=4)
        aggregator.extend(2, [chain("https://c.example", []), chain("https://d.example", [])])
        aggregator.extend(0, [chain("https://a.example", []), chain("https://b.example", [])])

        assert len(aggregator) == 4
        assert aggregator.results()[3].original_url == "https://d.example"

    def test_gap_is_an_error(self):
        """Test that missing indexes are reported."""
        aggregator = ResultAggregator(expected=3)
        aggregator.add(0, chain("https://a.example", []))
        aggregator.add(2, chain("https://c.example", []))

        assert not aggregator.is_complete
        with pytest.raises(ValueError, match=r"\[1\]"):
            aggregator.results()

    def test_duplicate_index_rejected(self):
        """Test that an index can only be filled once."""
        aggregator = ResultAggregator()
        aggregator.add(0, chain("https://a.example", []))

        with pytest.raises(ValueError):
            aggregator.add(0, chain("https://a.example", []))

    def test_index_out_of_range(self):
        """Test indexes outside the run."""
        aggregator = ResultAggregator(expected=1)

        with pytest.raises(IndexError):
            aggregator.add(1, chain("https://a.example", []))
        with pytest.raises(ValueError):
            aggregator.add(-1, chain("https://a.example", []))


class TestSummarizeResults:
    """Test suite for run statistics."""

    @pytest.fixture
    def results(self):
        """A run with direct, short, long, timed out and failed results."""
        return [
            chain("https://a.example", [ServerType.CDN]),
            chain("https://b.example", [ServerType.CDN, ServerType.ORIGIN]),
            chain("https://c.example", [ServerType.CDN, ServerType.CDN, ServerType.CDN]),
            chain(
                "https://d.example",
                [ServerType.CDN, ServerType.ORIGIN, ServerType.ORIGIN, ServerType.ORIGIN, ServerType.ORIGIN],
            ),
            chain(
                "https://e.example",
                [ServerType.UNKNOWN],
                state=NavigationState.TIMED_OUT,
                failure=ErrorDescriptor(FailureKind.TIMEOUT, "Navigation timed out after 45s"),
            ),
            chain(
                "https://f.example",
                [],
                state=NavigationState.FAILED,
                failure=ErrorDescriptor(FailureKind.TRANSPORT, "net::ERR_NAME_NOT_RESOLVED"),
            ),
        ]

    def test_empty(self):
        """Test summary of an empty run."""
        summary = summarize_results([])

        assert summary.total_urls == 0
        assert summary.recommendations == []

    def test_outcome_counts(self, results):
        """Test counts per navigation state and failure kind."""
        summary = summarize_results(results)

        assert summary.total_urls == 6
        assert summary.completed == 4
        assert summary.timed_out == 1
        assert summary.failed == 1
        assert summary.failures_by_kind == {"TimeoutError": 1, "TransportError": 1}

    def test_chain_statistics(self, results):
        """Test chain lengths counted in redirects."""
        summary = summarize_results(results)

        assert summary.redirected_urls == 3
        assert summary.chains_1_hop == 1
        assert summary.chains_2_hops == 1
        assert summary.chains_3_plus_hops == 1
        assert summary.max_chain_length == 4
        assert summary.total_hops == 12
        assert summary.avg_hops_per_url == 2.0

    def test_long_chains(self, results):
        """Test long chain detection at the threshold."""
        summary = summarize_results(results, long_chain_threshold=2)

        assert [c.source_url for c in summary.long_chains] == [
            "https://d.example",
            "https://c.example",
        ]
        assert summary.long_chains[0].hop_count == 4
        assert summary.long_chains[0].servers == ["cdn", "origin", "origin", "origin", "origin"]

    def test_server_transitions(self, results):
        """Test source to target transitions and hop counts per server type."""
        summary = summarize_results(results)

        assert summary.server_transitions == {
            "cdn->cdn": 2,
            "cdn->origin": 2,
            "unknown->unknown": 1,
        }
        assert summary.hops_by_server_type == {"cdn": 6, "origin": 5, "unknown": 1}

    def test_recommendations(self, results):
        """Test recommendations triggered by the run statistics."""
        summary = summarize_results(results)

        assert any("redirect 3+ times" in r for r in summary.recommendations)
        assert any("start at the edge but end on origin" in r for r in summary.recommendations)
        assert any("timed out" in r for r in summary.recommendations)
        assert not any("redirect loop" in r for r in summary.recommendations)

    def test_redirect_loop_recommendation(self):
        """Test that redirect loops are flagged."""
        summary = summarize_results([
            chain(
                "https://loop.example",
                [ServerType.CDN, ServerType.CDN],
                state=NavigationState.FAILED,
                failure=ErrorDescriptor(FailureKind.TOO_MANY_REDIRECTS, "Too many redirects"),
            ),
        ])

        assert any("redirect loop" in r for r in summary.recommendations)

    def test_summary_to_dict(self, results):
        """Test JSON-ready summary."""
        data = summarize_results(results).to_dict()

        assert data["chains_by_length"] == {"1_hop": 1, "2_hops": 1, "3_plus_hops": 1}
        assert data["long_chains"][0]["source"] == "https://d.example"
        assert data["failures_by_kind"]["TimeoutError"] == 1


class TestResultsToDicts:
    """Tests for result serialization."""

    def test_result_dict(self):
        """Test that derived fields are serialized."""
        result = chain("https://a.example", [ServerType.CDN, ServerType.ORIGIN])

        data = results_to_dicts([result])[0]

        assert data["original_url"] == "https://a.example"
        assert data["source_server_type"] == "cdn"
        assert data["target_server_type"] == "origin"
        assert data["state"] == "completed"
        assert data["failure"] is None
        assert data["hops"][0]["server"] == "Akamai"
        assert data["hops"][1]["server"] == "Apache (AEM)"
        assert data["hops"][1]["status_code"] == 200

    def test_failed_result_dict(self):
        """Test serialization of a failure without hops."""
        result = chain(
            "https://f.example",
            [],
            state=NavigationState.FAILED,
            failure=ErrorDescriptor(FailureKind.TRANSPORT, "net::ERR_CONNECTION_REFUSED"),
        )

        data = result.to_dict()

        assert data["source_server_type"] is None
        assert data["final_url"] is None
        assert data["failure"] == {"kind": "TransportError", "message": "net::ERR_CONNECTION_REFUSED"}
