"""Example usage of edgetrace - Redirect chain analysis for a few URLs."""

import asyncio

from edgetrace import RedirectChainAnalyzer


async def run(urls):
    analyzer = RedirectChainAnalyzer.from_env()
    async with analyzer:
        return await analyzer.run(urls)


def main():
    """Run example redirect chain analysis."""
    urls = [
        "http://bmw.de",
        "https://www.mini.com/en_MS/home.html",
    ]
    print(f"Analyzing {len(urls)} URLs...")

    report = asyncio.run(run(urls))

    for result in report.results:
        print(f"\n{result.original_url}")
        for hop in result.hops:
            print(f"  [{hop.status_code}] {hop.url} ({hop.server_type.label}, {hop.elapsed_seconds:.2f}s)")
        if result.failure:
            print(f"  ! {result.failure.kind.value}: {result.failure.message}")
        else:
            print(f"  -> {result.final_url}")

    summary = report.summary
    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    print(f"Completed: {summary.completed}, timed out: {summary.timed_out}, failed: {summary.failed}")
    print(f"Redirected URLs: {summary.redirected_urls}")
    print(f"Server transitions: {summary.server_transitions}")

    if summary.recommendations:
        print("\nRecommendations:")
        for rec in summary.recommendations:
            print(f"  • {rec}")


if __name__ == "__main__":
    main()
