#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
MCP Mautic Connector - Mautic marketing-automation integration

This package exposes create/update/get/list/delete operations for Mautic
companies and contacts, plus adding and removing contacts from companies,
as MCP functions and as a batch dispatcher over input records.

Main Components:
- MCPMauticConnector: Main connector class and batch dispatcher
- MauticApiClient: HTTP request and pagination helpers
- RateLimiter: API rate limiting and retry management
- MauticConfig: Configuration dataclass for the connector
- Credential descriptors: Mautic and Google OAuth2 credential types
"""

from .credentials import (
    GOOGLE_OAUTH2_API,
    MAUTIC_API,
    MAUTIC_OAUTH2_API,
    CredentialType,
    OAuth2CredentialType,
    get_credential_type,
)
from .mautic_client import MauticApiClient, MauticApiError, MauticOperationError
from .mcp_mautic_connector import MauticConfig, MCPMauticConnector, handle_mautic_errors
from .rate_limiter import RateLimiter

__version__ = "1.0.0"
__author__ = "bibow"

__all__ = [
    # Main Classes
    "MCPMauticConnector",
    "MauticApiClient",
    "RateLimiter",
    # Configuration
    "MauticConfig",
    "CredentialType",
    "OAuth2CredentialType",
    "GOOGLE_OAUTH2_API",
    "MAUTIC_API",
    "MAUTIC_OAUTH2_API",
    "get_credential_type",
    # Errors
    "MauticApiError",
    "MauticOperationError",
    # Utilities
    "handle_mautic_errors",
    # Metadata
    "__version__",
    "__author__",
]
