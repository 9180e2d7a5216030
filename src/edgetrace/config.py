from dotenv import load_dotenv
from dataclasses import dataclass, field
from typing import List
from pathlib import Path
import json
import os

from edgetrace.constants import (
    DEFAULT_CDN_IP_RANGES,
    DEFAULT_CACHE_STATUS_HEADERS,
    DEFAULT_CACHE_HIT_MARKERS,
    DEFAULT_CACHE_MISS_MARKERS,
    DEFAULT_VENDOR_DEBUG_HEADERS,
    DEFAULT_CDN_SERVER_TOKENS,
    DEFAULT_ORIGIN_SERVER_TOKENS,
    DEFAULT_RECOGNIZED_HOSTNAMES,
    DEFAULT_ORIGIN_MARKER_HEADERS,
    DEFAULT_ORIGIN_PATH_HEADERS,
    DEFAULT_ORIGIN_PATH_MARKERS,
    DEFAULT_SERVER_TIMING_CDN_ENTRIES,
    DEFAULT_USER_AGENT,
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_INTER_BATCH_DELAY_MS,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    DEFAULT_TIMEOUT_GRACE_SECONDS,
    DEFAULT_LONG_CHAIN_THRESHOLD,
)

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    LOG_FILE = os.getenv("EDGETRACE_LOG_FILE")
    USER_AGENT = os.getenv("EDGETRACE_USER_AGENT", DEFAULT_USER_AGENT)
    CLASSIFIER_CONFIG_FILE = os.getenv("EDGETRACE_CLASSIFIER_CONFIG")


settings = Settings()


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class AnalyzerConfig:
    """Run-level configuration for redirect chain analysis."""
    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    inter_batch_delay_ms: int = DEFAULT_INTER_BATCH_DELAY_MS
    navigation_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS
    timeout_grace_seconds: float = DEFAULT_TIMEOUT_GRACE_SECONDS
    dedupe_consecutive_hops: bool = True
    long_chain_threshold: int = DEFAULT_LONG_CHAIN_THRESHOLD
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        """Load configuration from environment variables.

        Environment variables are prefixed with EDGETRACE_,
        e.g. EDGETRACE_CONCURRENCY_LIMIT=8

        Returns:
            AnalyzerConfig with values from environment
        """
        config = cls()
        prefix = "EDGETRACE_"

        for field_name in config.__dataclass_fields__:
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is None:
                continue

            field_type = config.__dataclass_fields__[field_name].type
            try:
                if field_type in (bool, "bool"):
                    setattr(config, field_name, _env_bool(env_value))
                elif field_type in (int, "int"):
                    setattr(config, field_name, int(env_value))
                elif field_type in (float, "float"):
                    setattr(config, field_name, float(env_value))
                else:
                    setattr(config, field_name, env_value)
            except ValueError:
                pass  # Keep default if conversion fails

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }


@dataclass
class ClassifierConfig:
    """Signal vocabularies and network ranges used by the server classifier.

    Every list is policy, not code: sites with other edge vendors or origin
    stacks are supported by editing these values.
    """

    # Network ranges (CIDR notation) owned by the edge network
    cdn_ip_ranges: List[str] = field(default_factory=lambda: list(DEFAULT_CDN_IP_RANGES))

    # Cache-status headers and the markers found in their values
    cache_status_headers: List[str] = field(default_factory=lambda: list(DEFAULT_CACHE_STATUS_HEADERS))
    cache_hit_markers: List[str] = field(default_factory=lambda: list(DEFAULT_CACHE_HIT_MARKERS))
    cache_miss_markers: List[str] = field(default_factory=lambda: list(DEFAULT_CACHE_MISS_MARKERS))

    # Vendor-specific debug headers
    vendor_debug_headers: List[str] = field(default_factory=lambda: list(DEFAULT_VENDOR_DEBUG_HEADERS))

    # Server header substrings
    cdn_server_tokens: List[str] = field(default_factory=lambda: list(DEFAULT_CDN_SERVER_TOKENS))
    origin_server_tokens: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGIN_SERVER_TOKENS))

    # Hostname conventions
    recognized_hostnames: List[str] = field(default_factory=lambda: list(DEFAULT_RECOGNIZED_HOSTNAMES))
    origin_marker_headers: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGIN_MARKER_HEADERS))
    origin_path_headers: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGIN_PATH_HEADERS))
    origin_path_markers: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGIN_PATH_MARKERS))

    # Server-Timing entries that report edge cache state
    server_timing_cdn_entries: List[str] = field(default_factory=lambda: list(DEFAULT_SERVER_TIMING_CDN_ENTRIES))

    @classmethod
    def from_env(cls) -> "ClassifierConfig":
        """Load classifier lists from environment variables.

        Variables are prefixed with EDGETRACE_CLASSIFIER_ and hold
        comma-separated values, e.g.
        EDGETRACE_CLASSIFIER_RECOGNIZED_HOSTNAMES=example,shop

        Returns:
            ClassifierConfig with values from environment
        """
        config = cls()
        prefix = "EDGETRACE_CLASSIFIER_"

        for field_name in config.__dataclass_fields__:
            env_value = os.getenv(f"{prefix}{field_name.upper()}")
            if env_value is not None:
                setattr(config, field_name, _env_list(env_value))

        return config

    @classmethod
    def from_file(cls, path: str) -> "ClassifierConfig":
        """Load classifier lists from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            ClassifierConfig with values from file
        """
        config = cls()
        file_path = Path(path)

        if not file_path.exists():
            return config

        with open(file_path, 'r') as f:
            data = json.load(f)

        classifier_data = data.get('classifier', data)

        for field_name in config.__dataclass_fields__:
            if field_name in classifier_data:
                setattr(config, field_name, list(classifier_data[field_name]))

        return config

    def to_dict(self) -> dict:
        """Convert classifier configuration to dictionary."""
        return {
            field_name: list(getattr(self, field_name))
            for field_name in self.__dataclass_fields__
        }

    def save_to_file(self, path: str) -> None:
        """Save current classifier configuration to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'classifier': self.to_dict()}, f, indent=2)


# Global default classifier configuration
default_classifier_config = ClassifierConfig()
