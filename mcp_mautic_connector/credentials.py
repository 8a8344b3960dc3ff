#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Credential descriptors for MCP Mautic Connector

Static, load-time configuration describing the credential types the
connector understands. Descriptors carry no behavior beyond reporting
their fields; token exchange is left to the host.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class CredentialProperty:
    """A single field of a credential type"""

    display_name: str
    name: str
    type: str = "string"
    default: Any = ""
    required: bool = False


@dataclass(frozen=True)
class CredentialType:
    """Credential type made of user-supplied properties"""

    name: str
    display_name: str
    properties: Tuple[CredentialProperty, ...] = ()
    extends: Tuple[str, ...] = ()

    @property
    def required_fields(self) -> List[str]:
        return [prop.name for prop in self.properties if prop.required]

    def missing_fields(self, values: Dict[str, Any]) -> List[str]:
        """Names of required properties absent or empty in ``values``"""
        return [name for name in self.required_fields if not values.get(name)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "extends": list(self.extends),
            "properties": [
                {
                    "displayName": prop.display_name,
                    "name": prop.name,
                    "type": prop.type,
                    "default": prop.default,
                }
                for prop in self.properties
            ],
        }


@dataclass(frozen=True)
class OAuth2CredentialType(CredentialType):
    """OAuth2 credential type whose endpoints and scopes are fixed"""

    auth_url: str = ""
    access_token_url: str = ""
    scopes: Tuple[str, ...] = ()
    auth_query_parameters: str = ""
    authentication: str = "body"
    extends: Tuple[str, ...] = field(default=("oAuth2Api",))

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)

    def to_dict(self) -> Dict[str, Any]:
        description = super().to_dict()
        description["properties"].extend(
            [
                {
                    "displayName": "Authorization URL",
                    "name": "authUrl",
                    "type": "hidden",
                    "default": self.auth_url,
                },
                {
                    "displayName": "Access Token URL",
                    "name": "accessTokenUrl",
                    "type": "hidden",
                    "default": self.access_token_url,
                },
                {"displayName": "Scope", "name": "scope", "type": "hidden", "default": self.scope},
                {
                    "displayName": "Auth URI Query Parameters",
                    "name": "authQueryParameters",
                    "type": "hidden",
                    "default": self.auth_query_parameters,
                },
                {
                    "displayName": "Authentication",
                    "name": "authentication",
                    "type": "hidden",
                    "default": self.authentication,
                },
            ]
        )
        return description


GOOGLE_OAUTH2_API = OAuth2CredentialType(
    name="googleOAuth2Api",
    display_name="Google OAuth2 API",
    auth_url="https://accounts.google.com/o/oauth2/v2/auth",
    access_token_url="https://oauth2.googleapis.com/token",
    scopes=(
        "https://www.googleapis.com/auth/calendar",
        "https://www.googleapis.com/auth/calendar.events",
    ),
    auth_query_parameters="access_type=offline",
    authentication="body",
)

MAUTIC_API = CredentialType(
    name="mauticApi",
    display_name="Mautic API",
    properties=(
        CredentialProperty("URL", "mautic_url", required=True),
        CredentialProperty("Username", "mautic_username", required=True),
        CredentialProperty("Password", "mautic_password", type="password", required=True),
    ),
)

# Token exchange happens in the host; the connector only receives the resulting token.
MAUTIC_OAUTH2_API = CredentialType(
    name="mauticOAuth2Api",
    display_name="Mautic OAuth2 API",
    extends=("oAuth2Api",),
    properties=(
        CredentialProperty("URL", "mautic_url", required=True),
        CredentialProperty("Access Token", "mautic_access_token", type="password", required=True),
    ),
)

CREDENTIAL_TYPES: Dict[str, CredentialType] = {
    credential.name: credential for credential in (GOOGLE_OAUTH2_API, MAUTIC_API, MAUTIC_OAUTH2_API)
}

# Maps the connector's ``authentication`` setting to the credential it needs.
AUTHENTICATION_CREDENTIALS = {
    "credentials": MAUTIC_API.name,
    "oAuth2": MAUTIC_OAUTH2_API.name,
}


def get_credential_type(name: str) -> CredentialType:
    try:
        return CREDENTIAL_TYPES[name]
    except KeyError:
        raise ValueError(f"Unknown credential type: {name}") from None
