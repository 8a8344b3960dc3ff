"""
Shared pytest fixtures for the MCP Mautic Connector test suite.
"""

import logging
from unittest.mock import AsyncMock

import pytest

from mcp_mautic_connector import MCPMauticConnector


@pytest.fixture
def logger():
    return logging.getLogger("mcp_mautic_connector.tests")


@pytest.fixture
def settings():
    return {
        "mautic_url": "https://mautic.example.com/",
        "mautic_username": "admin",
        "mautic_password": "secret",
        "rate_limit_enabled": False,
        "max_retries": 0,
    }


@pytest.fixture
def connector(logger, settings):
    """Connector whose HTTP helpers are stubbed out."""
    connector = MCPMauticConnector(logger, **settings)
    connector.client.api_request = AsyncMock()
    connector.client.api_request_all_items = AsyncMock()
    return connector
