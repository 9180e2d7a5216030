"""Result aggregation and run statistics for redirect chain analysis."""

from collections import Counter
from typing import Dict, List, Optional, Sequence

from edgetrace.constants import (
    DEFAULT_LONG_CHAIN_THRESHOLD,
    MAX_LONG_CHAINS_IN_SUMMARY,
)
from edgetrace.models import (
    AnalysisResult,
    LongChain,
    NavigationState,
    RunSummary,
)


class ResultAggregator:
    """Collects per-URL results and hands them out in input order.

    Results are keyed by the URL's original index, so completion order
    inside a batch never affects the output order.
    """

    def __init__(self, expected: Optional[int] = None):
        """Initialize aggregator.

        Args:
            expected: Number of results the run will produce, if known
        """
        self.expected = expected
        self._results: Dict[int, AnalysisResult] = {}

    def add(self, index: int, result: AnalysisResult) -> None:
        """Store the result for the URL at ``index``."""
        if index < 0:
            raise ValueError(f"Result index must be non-negative, got {index}")
        if self.expected is not None and index >= self.expected:
            raise IndexError(f"Result index {index} outside run of {self.expected} URLs")
        if index in self._results:
            raise ValueError(f"Result for index {index} already recorded")
        self._results[index] = result

    def extend(self, start: int, results: Sequence[AnalysisResult]) -> None:
        """Store consecutive results beginning at ``start``."""
        for offset, result in enumerate(results):
            self.add(start + offset, result)

    def __len__(self) -> int:
        return len(self._results)

    @property
    def is_complete(self) -> bool:
        if self.expected is None:
            return True
        return len(self._results) == self.expected

    def results(self) -> List[AnalysisResult]:
        """Return all results ordered by original index.

        Raises:
            ValueError: If any index between 0 and the last one is missing
        """
        size = self.expected if self.expected is not None else len(self._results)
        missing = [i for i in range(size) if i not in self._results]
        if missing:
            raise ValueError(f"Missing results for indexes {missing[:10]}")
        return [self._results[i] for i in range(size)]

    def summarize(self, long_chain_threshold: int = DEFAULT_LONG_CHAIN_THRESHOLD) -> RunSummary:
        """Summarize the collected results."""
        return summarize_results(self.results(), long_chain_threshold)


def summarize_results(
    results: Sequence[AnalysisResult],
    long_chain_threshold: int = DEFAULT_LONG_CHAIN_THRESHOLD,
) -> RunSummary:
    """Compute run statistics over analysis results.

    Args:
        results: Results of one run
        long_chain_threshold: Chains with at least this many redirects are long

    Returns:
        RunSummary with outcome counts, chain statistics and recommendations
    """
    summary = RunSummary(total_urls=len(results))
    if not results:
        return summary

    failures: Counter = Counter()
    transitions: Counter = Counter()
    server_hops: Counter = Counter()
    long_chains: List[LongChain] = []

    for result in results:
        if result.state == NavigationState.COMPLETED:
            summary.completed += 1
        elif result.state == NavigationState.TIMED_OUT:
            summary.timed_out += 1
        else:
            summary.failed += 1

        if result.failure:
            failures[result.failure.kind.value] += 1

        for hop in result.hops:
            server_hops[hop.server_type.value] += 1

        if not result.hops:
            continue

        transitions[f"{result.source_server_type.value}->{result.target_server_type.value}"] += 1
        summary.total_hops += result.hop_count

        if not result.was_redirected:
            continue

        # Chain length counts redirects, i.e. hops before the final response
        redirects = result.hop_count - 1
        summary.redirected_urls += 1
        if redirects == 1:
            summary.chains_1_hop += 1
        elif redirects == 2:
            summary.chains_2_hops += 1
        else:
            summary.chains_3_plus_hops += 1

        summary.max_chain_length = max(summary.max_chain_length, redirects)

        if redirects >= long_chain_threshold:
            long_chains.append(LongChain(
                source_url=result.original_url,
                final_url=result.final_url,
                hop_count=redirects,
                servers=[hop.server_type.value for hop in result.hops],
            ))

    summary.avg_hops_per_url = round(summary.total_hops / len(results), 2)
    summary.failures_by_kind = dict(failures)
    summary.server_transitions = dict(transitions)
    summary.hops_by_server_type = dict(server_hops)

    long_chains.sort(key=lambda chain: chain.hop_count, reverse=True)
    summary.long_chains = long_chains[:MAX_LONG_CHAINS_IN_SUMMARY]

    summary.recommendations = _generate_recommendations(summary, long_chain_threshold)
    return summary


def _generate_recommendations(summary: RunSummary, long_chain_threshold: int) -> List[str]:
    """Generate recommendations based on run statistics."""
    recommendations = []

    if summary.long_chains:
        recommendations.append(
            f"{len(summary.long_chains)} URLs redirect {long_chain_threshold}+ times. "
            "Consolidate these to single redirects."
        )

    edge_to_origin = summary.server_transitions.get("cdn->origin", 0)
    if edge_to_origin:
        recommendations.append(
            f"{edge_to_origin} chains start at the edge but end on origin. "
            "Check cache rules for the final URLs."
        )

    timeouts = summary.failures_by_kind.get("TimeoutError", 0)
    if timeouts:
        recommendations.append(
            f"{timeouts} URLs timed out. Re-run them with a longer navigation timeout."
        )

    loops = summary.failures_by_kind.get("TooManyRedirectsError", 0)
    if loops:
        recommendations.append(
            f"{loops} URLs hit a redirect loop and should be fixed immediately."
        )

    return recommendations


def results_to_dicts(results: Sequence[AnalysisResult]) -> List[dict]:
    """Convert results to JSON-ready dictionaries for report collaborators."""
    return [result.to_dict() for result in results]
