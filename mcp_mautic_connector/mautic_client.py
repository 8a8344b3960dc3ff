#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HTTP layer for MCP Mautic Connector

MauticApiClient wraps an ``httpx.AsyncClient`` pointed at ``{url}/api`` and
provides the two helpers every operation goes through: a single request and
a paginated fetch of every item of a collection.
"""

from __future__ import annotations

__author__ = "bibow"

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .rate_limiter import RateLimiter


class MauticOperationError(Exception):
    """Raised for invalid input detected before any request is sent"""


class MauticApiError(Exception):
    """Raised when Mautic answers with an error status or an ``errors`` payload"""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        self.status_code = status_code
        self.response = response
        super().__init__(message)

    @classmethod
    def from_payload(cls, payload: Any, status_code: Optional[int] = None) -> "MauticApiError":
        message = "Mautic API error"
        errors = payload.get("errors") if isinstance(payload, dict) else None
        if isinstance(errors, list) and errors:
            first = errors[0]
            message = first.get("message", message) if isinstance(first, dict) else str(first)
        elif isinstance(errors, dict) and errors:
            message = "; ".join(f"{key}: {value}" for key, value in errors.items())
        elif status_code is not None:
            message = f"Mautic API returned HTTP {status_code}"
        return cls(message, status_code=status_code, response=payload)


def validate_json(value: Any) -> Optional[Dict[str, Any]]:
    """Parse a user supplied JSON object, returning None when it is not one"""
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


class MauticApiClient:
    """Thin async client for the Mautic REST API"""

    def __init__(
        self,
        logger: logging.Logger,
        base_url: str,
        authentication: str = "credentials",
        username: Optional[str] = None,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = 30,
        page_size: int = 30,
        rate_limiter: Optional[RateLimiter] = None,
        debug_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logger
        self.base_url = f"{base_url.rstrip('/')}/api"
        self.page_size = page_size
        self.debug_mode = debug_mode
        self.rate_limiter = rate_limiter or RateLimiter(max_retries=0)

        auth = None
        headers = {"Accept": "application/json"}
        if authentication == "oAuth2":
            headers["Authorization"] = f"Bearer {access_token}"
        else:
            auth = httpx.BasicAuth(username or "", password or "")

        self.http = httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "MauticApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http.aclose()

    async def api_request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON payload"""
        return await self.rate_limiter.execute_with_retry(
            self._send, method, endpoint, body, query
        )

    async def _send(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]],
        query: Optional[Dict[str, Any]],
    ) -> Any:
        if self.debug_mode:
            self.logger.debug(f"Mautic {method} {endpoint} query={query} body={body}")

        response = await self.http.request(
            method,
            endpoint,
            json=body,
            params=_encode_query(query) if query else None,
        )
        payload = _decode(response)

        if response.is_error:
            raise MauticApiError.from_payload(payload, status_code=response.status_code)
        # Mautic sometimes reports failures with a 2xx status.
        if isinstance(payload, dict) and payload.get("errors"):
            raise MauticApiError.from_payload(payload, status_code=response.status_code)
        return payload

    async def api_request_all_items(
        self,
        property_name: str,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> List[Any]:
        """Fetch every page of ``endpoint`` and return the items under ``property_name``"""
        query = dict(query or {})
        query["limit"] = self.page_size
        query["start"] = 0
        items: List[Any] = []

        while True:
            payload = await self.api_request(method, endpoint, body, dict(query))
            page = _collection_values(payload.get(property_name))
            items.extend(page)
            query["start"] += query["limit"]

            total = payload.get("total")
            if not page or total is None or query["start"] >= int(total):
                break

        self.logger.info(f"Fetched {len(items)} {property_name} from Mautic")
        return items


def _collection_values(collection: Any) -> List[Any]:
    """Mautic returns collections keyed by id, or an empty list when there are none"""
    if isinstance(collection, dict):
        return list(collection.values())
    if isinstance(collection, list):
        return collection
    return []


def _encode_query(query: Dict[str, Any]) -> Dict[str, Any]:
    encoded = {}
    for key, value in query.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        encoded[key] = value
    return encoded


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        if response.is_error:
            return {"message": response.text}
        raise MauticApiError(
            "Mautic returned a response that is not JSON",
            status_code=response.status_code,
            response=response.text,
        )
