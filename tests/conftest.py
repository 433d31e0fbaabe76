"""Shared pytest fixtures for rfcbot tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_client_singletons():
    """Reset module-level clients to avoid cross-test contamination.

    The webhook tasks client and the GitHub client are lazily created
    module globals. Without this reset, task ids enqueued by one test are
    seen as duplicates by the next.
    """
    import rfcbot.api.routes.webhooks_github as webhooks_module
    import rfcbot.github.client as client_module

    webhooks_module._tasks_client = None
    client_module._client = None
    yield
    webhooks_module._tasks_client = None
    client_module._client = None
