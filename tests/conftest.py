"""Shared fixtures for classifier, navigation and scheduler tests."""

import pytest

from edgetrace.classifier import ServerClassifier
from edgetrace.config import AnalyzerConfig, ClassifierConfig
from edgetrace.infrastructure.ip_cache import HostnameIpCache

from fakes import FakeResolver


@pytest.fixture
def fake_resolver():
    """Resolver knowing one edge-hosted and one origin-hosted name."""
    return FakeResolver({
        "edge.example.com": "23.200.1.1",
        "origin.example.com": "198.51.100.7",
    })


@pytest.fixture
def classifier(fake_resolver):
    """Classifier with default vocabularies and a fake DNS resolver."""
    return ServerClassifier(
        config=ClassifierConfig(),
        ip_cache=HostnameIpCache(resolver=fake_resolver),
    )


@pytest.fixture
def fast_config():
    """Run configuration with short timeouts and no cooldown."""
    return AnalyzerConfig(
        navigation_timeout_ms=200,
        timeout_grace_seconds=0.05,
        inter_batch_delay_ms=0,
    )
