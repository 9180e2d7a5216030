"""
Logging configuration for redirect chain analysis runs.

Records are tagged with the batch and seed URL they belong to, so the
interleaved output of a window of concurrent navigations can be told apart.
The tags live in context variables: every navigation of a window runs in its
own task and therefore sees its own URL.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Iterator, Optional

from edgetrace.config import AnalyzerConfig, Settings

DEFAULT_LOG_FORMAT = (
    '%(asctime)s - %(name)s - %(levelname)s - [batch %(batch)s] [%(url)s] %(message)s'
)
NO_CONTEXT = "-"

_current_batch: ContextVar[str] = ContextVar("edgetrace_batch", default=NO_CONTEXT)
_current_url: ContextVar[str] = ContextVar("edgetrace_url", default=NO_CONTEXT)


class RunContextFilter(logging.Filter):
    """Adds ``batch`` and ``url`` attributes to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.batch = _current_batch.get()
        record.url = _current_url.get()
        return True


@contextmanager
def log_context(url: Optional[str] = None, batch: Optional[str] = None) -> Iterator[None]:
    """Tag log records emitted inside the block with a URL and/or batch.

    Example:
        with log_context(batch="2/5"):
            await asyncio.gather(...)
    """
    tokens = []
    if batch is not None:
        tokens.append((_current_batch, _current_batch.set(batch)))
    if url is not None:
        tokens.append((_current_url, _current_url.set(url)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def setup_logging(
    config: Optional[AnalyzerConfig] = None,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Configure logging for a redirect chain analysis run.

    Args:
        config: Run configuration; its ``log_level`` sets the root level
        log_file: Optional log file path (defaults to EDGETRACE_LOG_FILE)
        format_string: Optional custom format string; ``%(batch)s`` and
            ``%(url)s`` are available
    """
    config = config or AnalyzerConfig()
    if log_file is None:
        log_file = Settings.LOG_FILE
    if format_string is None:
        format_string = DEFAULT_LOG_FORMAT

    numeric_level = getattr(logging, config.log_level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    context_filter = RunContextFilter()
    for handler in handlers:
        handler.addFilter(context_filter)

    logging.basicConfig(
        level=numeric_level,
        format=format_string,
        handlers=handlers,
        force=True
    )

    # Browser driver and event loop chatter drowns out per-hop records
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('playwright').setLevel(logging.WARNING)
