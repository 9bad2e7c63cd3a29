"""
Integration Test Configuration

Live tests against SerpAPI and the LLM are marked ``live`` and ``slow``. They
run only when SERPAPI_API_KEY is set, and slow tests are skipped in CI
(CI=true).
"""

import os

import pytest


@pytest.fixture
def is_ci_environment() -> bool:
    """True when the CI environment variable is 'true'."""
    return os.getenv("CI", "").lower() == "true"


@pytest.fixture(autouse=True)
def skip_slow_tests_in_ci(request, is_ci_environment):
    """Skip tests marked @pytest.mark.slow when running in CI."""
    if is_ci_environment and request.node.get_closest_marker("slow"):
        pytest.skip("Skipping slow test in CI environment")


@pytest.fixture(autouse=True)
def skip_live_tests_without_credentials(request):
    """Skip tests marked @pytest.mark.live unless a SerpAPI key is configured."""
    if request.node.get_closest_marker("live") and not os.getenv("SERPAPI_API_KEY"):
        pytest.skip("SERPAPI_API_KEY not set; skipping live test")
