from __future__ import annotations

import logging

import pytest

from namemapper.core.providers import register_provider, unregister_provider
from namemapper.services.resolver_service import reset_global_configuration
from tests.mapping_providers import CALLS, TEST_PROVIDERS


@pytest.fixture(autouse=True)
def reset_mapping_state():
    root_logger = logging.getLogger()
    handlers, level = list(root_logger.handlers), root_logger.level
    reset_global_configuration()
    CALLS.clear()
    yield
    reset_global_configuration()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def fake_providers():
    for identifier, factory in TEST_PROVIDERS.items():
        register_provider(identifier, factory)
    try:
        yield TEST_PROVIDERS
    finally:
        for identifier in TEST_PROVIDERS:
            unregister_provider(identifier)
