"""
Shared test fixtures.

A complete environment is seeded before any application module is imported
so that settings validation never depends on the developer's shell.
"""

import os

import pytest

TEST_ENV = {
    "PORT": "4000",
    "GITHUB_WEBHOOK_SECRET": "test_secret",
    "GITHUB_APP_ID": "12345",
    "GITHUB_INSTALLATION_ID": "67890",
    "GITHUB_PRIVATE_KEY": "test-private-key",
    "OPENAI_API_KEY": "test_key",
}

for _key, _value in TEST_ENV.items():
    os.environ.setdefault(_key, _value)


@pytest.fixture
def settings():
    """Validated settings independent of any .env file."""
    from triagebot.config import Settings

    return Settings(
        _env_file=None,
        port=4000,
        github_webhook_secret="test_secret",
        github_app_id=12345,
        github_installation_id=67890,
        github_private_key="test-private-key",
        openai_api_key="test_key",
    )
