#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

__author__ = "bibow"

import logging
import traceback
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from .credentials import AUTHENTICATION_CREDENTIALS, get_credential_type
from .field_mapper import (
    build_company_body,
    build_contact_create_body,
    build_contact_update_body,
    build_list_query,
    fields_all,
)
from .mautic_client import MauticApiClient, MauticApiError, MauticOperationError
from .rate_limiter import RateLimiter

Response = Union[Dict[str, Any], List[Dict[str, Any]]]


@dataclass
class MauticConfig:
    """Connection and behavior settings for a Mautic instance"""

    mautic_url: str
    authentication: str = "credentials"
    mautic_username: Optional[str] = None
    mautic_password: Optional[str] = None
    mautic_access_token: Optional[str] = None
    rate_limit_enabled: bool = True
    calls_per_second: int = 10
    max_retries: int = 3
    timeout: int = 30
    page_size: int = 30
    continue_on_fail: bool = False
    debug_mode: bool = False


def handle_mautic_errors(func):
    """Decorator to log Mautic errors consistently before they propagate"""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except MauticOperationError as e:
            log = traceback.format_exc()
            self.logger.error(f"{func.__name__} rejected: {e}\n{log}")
            raise
        except MauticApiError as e:
            log = traceback.format_exc()
            self.logger.error(f"{func.__name__} Mautic API error ({e.status_code}): {e}\n{log}")
            raise
        except httpx.TransportError as e:
            log = traceback.format_exc()
            self.logger.error(f"{func.__name__} transport error: {e}\n{log}")
            raise

    return wrapper


def _require(arguments: Dict[str, Any], name: str) -> Any:
    value = arguments.get(name)
    if value is None or value == "":
        raise MauticOperationError(f"{name} is required")
    return value


class MCPMauticConnector:
    """Service layer exposing Mautic companies, contacts and their associations"""

    def __init__(self, logger: logging.Logger, **settings: Dict[str, Any]):
        self.logger = logger
        self.setting = settings

        authentication = settings.get("authentication", "credentials")
        if authentication not in AUTHENTICATION_CREDENTIALS:
            raise ValueError(f"Unsupported authentication: {authentication}")

        credential_type = get_credential_type(AUTHENTICATION_CREDENTIALS[authentication])
        missing = credential_type.missing_fields(settings)
        if missing:
            raise ValueError(
                f"{', '.join(missing)} required in settings for {credential_type.display_name}"
            )

        self.config = MauticConfig(
            mautic_url=settings["mautic_url"],
            authentication=authentication,
            mautic_username=settings.get("mautic_username"),
            mautic_password=settings.get("mautic_password"),
            mautic_access_token=settings.get("mautic_access_token"),
            rate_limit_enabled=settings.get("rate_limit_enabled", True),
            calls_per_second=settings.get("calls_per_second", 10),
            max_retries=settings.get("max_retries", 3),
            timeout=settings.get("timeout", 30),
            page_size=settings.get("page_size", 30),
            continue_on_fail=settings.get("continue_on_fail", False),
            debug_mode=settings.get("debug_mode", False),
        )

        self.rate_limiter = RateLimiter(
            calls_per_second=self.config.calls_per_second,
            max_retries=self.config.max_retries,
            enabled=self.config.rate_limit_enabled,
        )
        self.client = MauticApiClient(
            logger,
            self.config.mautic_url,
            authentication=self.config.authentication,
            username=self.config.mautic_username,
            password=self.config.mautic_password,
            access_token=self.config.mautic_access_token,
            timeout=self.config.timeout,
            page_size=self.config.page_size,
            rate_limiter=self.rate_limiter,
            debug_mode=self.config.debug_mode,
            transport=settings.get("transport"),
        )

        self.handlers: Dict[str, Dict[str, Callable[..., Awaitable[Response]]]] = {
            "company": {
                "create": self._create_company,
                "update": self._update_company,
                "get": self._get_company,
                "getAll": self._get_all_companies,
                "delete": self._delete_company,
            },
            "contact": {
                "create": self._create_contact,
                "update": self._update_contact,
                "get": self._get_contact,
                "getAll": self._get_all_contacts,
                "delete": self._delete_contact,
            },
            "contactCompany": {
                "add": self._add_contact_to_company,
                "remove": self._remove_contact_from_company,
            },
        }

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self) -> "MCPMauticConnector":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # * MCP Function.
    async def execute(self, **arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Run one resource/operation pair over every input record, in order.

        ``resource`` and ``operation`` are read once for the whole batch;
        ``items`` holds the per-record arguments. List responses are spread
        into the output, single objects appended.
        """
        resource = _require(arguments, "resource")
        operation = _require(arguments, "operation")
        items = arguments.get("items") or [{}]

        handler = self.handlers.get(resource, {}).get(operation)
        if handler is None:
            raise MauticOperationError(
                f"The operation '{operation}' is not supported for resource '{resource}'"
            )

        self.logger.info(f"Executing {resource}:{operation} over {len(items)} item(s)")

        return_data: List[Dict[str, Any]] = []
        for index, item in enumerate(items):
            try:
                response_data = await handler(**item)
            except (MauticOperationError, MauticApiError, httpx.TransportError) as e:
                if not self.config.continue_on_fail:
                    raise
                self.logger.warning(f"Item {index} of {resource}:{operation} failed: {e}")
                return_data.append({"error": str(e)})
                continue

            if isinstance(response_data, list):
                return_data.extend(response_data)
            else:
                return_data.append(response_data)

        return return_data

    # * MCP Function.
    async def create_company(self, **arguments: Dict[str, Any]) -> Response:
        """Create a new company in Mautic."""
        self.logger.info(f"Creating company with arguments: {arguments}")
        return await self._create_company(**arguments)

    # * MCP Function.
    async def update_company(self, **arguments: Dict[str, Any]) -> Response:
        """Update an existing company in Mautic."""
        self.logger.info(f"Updating company with arguments: {arguments}")
        return await self._update_company(**arguments)

    # * MCP Function.
    async def get_company(self, **arguments: Dict[str, Any]) -> Response:
        """Get a company from Mautic."""
        self.logger.info(f"Getting company with arguments: {arguments}")
        return await self._get_company(**arguments)

    # * MCP Function.
    async def get_companies(self, **arguments: Dict[str, Any]) -> Response:
        """List companies from Mautic."""
        self.logger.info(f"Getting companies with arguments: {arguments}")
        return await self._get_all_companies(**arguments)

    # * MCP Function.
    async def delete_company(self, **arguments: Dict[str, Any]) -> Response:
        """Delete a company from Mautic."""
        self.logger.info(f"Deleting company with arguments: {arguments}")
        return await self._delete_company(**arguments)

    # * MCP Function.
    async def create_contact(self, **arguments: Dict[str, Any]) -> Response:
        """Create a new contact in Mautic."""
        self.logger.info(f"Creating contact with arguments: {arguments}")
        return await self._create_contact(**arguments)

    # * MCP Function.
    async def update_contact(self, **arguments: Dict[str, Any]) -> Response:
        """Update an existing contact in Mautic."""
        self.logger.info(f"Updating contact with arguments: {arguments}")
        return await self._update_contact(**arguments)

    # * MCP Function.
    async def get_contact(self, **arguments: Dict[str, Any]) -> Response:
        """Get a contact from Mautic."""
        self.logger.info(f"Getting contact with arguments: {arguments}")
        return await self._get_contact(**arguments)

    # * MCP Function.
    async def get_contacts(self, **arguments: Dict[str, Any]) -> Response:
        """List contacts from Mautic."""
        self.logger.info(f"Getting contacts with arguments: {arguments}")
        return await self._get_all_contacts(**arguments)

    # * MCP Function.
    async def delete_contact(self, **arguments: Dict[str, Any]) -> Response:
        """Delete a contact from Mautic."""
        self.logger.info(f"Deleting contact with arguments: {arguments}")
        return await self._delete_contact(**arguments)

    # * MCP Function.
    async def add_contact_to_company(self, **arguments: Dict[str, Any]) -> Response:
        """Add a contact to a company in Mautic."""
        self.logger.info(f"Adding contact to company with arguments: {arguments}")
        return await self._add_contact_to_company(**arguments)

    # * MCP Function.
    async def remove_contact_from_company(self, **arguments: Dict[str, Any]) -> Response:
        """Remove a contact from a company in Mautic."""
        self.logger.info(f"Removing contact from company with arguments: {arguments}")
        return await self._remove_contact_from_company(**arguments)

    # * MCP Function.
    async def list_companies(self, **arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Company names as name/value options."""
        self.logger.info(f"Listing companies with arguments: {arguments}")
        companies = await self.client.api_request_all_items("companies", "GET", "/companies")
        names = [company["fields"]["all"]["companyname"] for company in companies]
        return [{"name": name, "value": name} for name in names]

    # * MCP Function.
    async def list_tags(self, **arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Tags as name/value options."""
        self.logger.info(f"Listing tags with arguments: {arguments}")
        tags = await self.client.api_request_all_items("tags", "GET", "/tags")
        return [{"name": tag["tag"], "value": tag["tag"]} for tag in tags]

    # * MCP Function.
    async def list_stages(self, **arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Stages as name/id options."""
        self.logger.info(f"Listing stages with arguments: {arguments}")
        stages = await self.client.api_request_all_items("stages", "GET", "/stages")
        return [{"name": stage["name"], "value": stage["id"]} for stage in stages]

    # * MCP Function.
    async def list_company_fields(self, **arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Company field labels and aliases."""
        self.logger.info(f"Listing company fields with arguments: {arguments}")
        fields = await self.client.api_request_all_items("fields", "GET", "/fields/company")
        return [{"name": field["label"], "value": field["alias"]} for field in fields]

    # * MCP Function.
    async def list_contact_fields(self, **arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Contact field labels and aliases."""
        self.logger.info(f"Listing contact fields with arguments: {arguments}")
        fields = await self.client.api_request_all_items("fields", "GET", "/fields/contact")
        return [{"name": field["label"], "value": field["alias"]} for field in fields]

    async def ping(self, **arguments: Dict[str, Any]) -> str:
        """Ping Mautic API to test connectivity."""
        try:
            self.logger.info(f"Pinging Mautic API with arguments: {arguments}")
            await self.client.api_request("GET", "/contacts", query={"limit": 1})
            return "Mautic API connection successful. Credentials are valid."

        except (MauticApiError, httpx.HTTPError) as e:
            log = traceback.format_exc()
            self.logger.error(log)
            return f"Mautic API connection failed: {str(e)}"

    # Companies ---------------------------------------------------------------

    def _company_response(self, response_data: Dict[str, Any], simple: bool) -> Dict[str, Any]:
        company = response_data["company"]
        return company["fields"]["all"] if simple else company

    @handle_mautic_errors
    async def _create_company(self, **arguments: Any) -> Response:
        body = build_company_body(
            arguments.get("additional_fields") or {},
            {"companyname": _require(arguments, "name")},
        )
        response_data = await self.client.api_request("POST", "/companies/new", body)
        return self._company_response(response_data, arguments.get("simple", True))

    @handle_mautic_errors
    async def _update_company(self, **arguments: Any) -> Response:
        company_id = _require(arguments, "company_id")
        body = build_company_body(arguments.get("update_fields") or {})
        response_data = await self.client.api_request("PATCH", f"/companies/{company_id}/edit", body)
        return self._company_response(response_data, arguments.get("simple", True))

    @handle_mautic_errors
    async def _get_company(self, **arguments: Any) -> Response:
        company_id = _require(arguments, "company_id")
        response_data = await self.client.api_request("GET", f"/companies/{company_id}")
        return self._company_response(response_data, arguments.get("simple", True))

    @handle_mautic_errors
    async def _get_all_companies(self, **arguments: Any) -> Response:
        query = build_list_query(arguments.get("additional_fields") or {})
        companies = await self._get_all("companies", "/companies", query, arguments)
        if arguments.get("simple", True):
            companies = fields_all(companies)
        return companies

    @handle_mautic_errors
    async def _delete_company(self, **arguments: Any) -> Response:
        company_id = _require(arguments, "company_id")
        response_data = await self.client.api_request("DELETE", f"/companies/{company_id}/delete")
        return self._company_response(response_data, arguments.get("simple", True))

    # Contacts ----------------------------------------------------------------

    def _contact_response(self, contacts: List[Dict[str, Any]], options: Dict[str, Any]) -> Response:
        if options.get("raw_data", True) is False:
            return fields_all(contacts)
        return contacts

    @handle_mautic_errors
    async def _create_contact(self, **arguments: Any) -> Response:
        body = build_contact_create_body(arguments)
        response_data = await self.client.api_request("POST", "/contacts/new", body)
        return self._contact_response([response_data["contact"]], arguments.get("options") or {})

    @handle_mautic_errors
    async def _update_contact(self, **arguments: Any) -> Response:
        contact_id = _require(arguments, "contact_id")
        body = build_contact_update_body(arguments.get("update_fields") or {})
        response_data = await self.client.api_request("PATCH", f"/contacts/{contact_id}/edit", body)
        return self._contact_response([response_data["contact"]], arguments.get("options") or {})

    @handle_mautic_errors
    async def _get_contact(self, **arguments: Any) -> Response:
        contact_id = _require(arguments, "contact_id")
        response_data = await self.client.api_request("GET", f"/contacts/{contact_id}")
        return self._contact_response([response_data["contact"]], arguments.get("options") or {})

    @handle_mautic_errors
    async def _get_all_contacts(self, **arguments: Any) -> Response:
        options = arguments.get("options") or {}
        query = build_list_query(options)
        contacts = await self._get_all("contacts", "/contacts", query, arguments)
        return self._contact_response(contacts, options)

    @handle_mautic_errors
    async def _delete_contact(self, **arguments: Any) -> Response:
        contact_id = _require(arguments, "contact_id")
        response_data = await self.client.api_request("DELETE", f"/contacts/{contact_id}/delete")
        return self._contact_response([response_data["contact"]], arguments.get("options") or {})

    # Contact <> Company ------------------------------------------------------

    @handle_mautic_errors
    async def _add_contact_to_company(self, **arguments: Any) -> Response:
        contact_id = _require(arguments, "contact_id")
        company_id = _require(arguments, "company_id")
        return await self.client.api_request(
            "POST", f"/companies/{company_id}/contact/{contact_id}/add", {}
        )

    @handle_mautic_errors
    async def _remove_contact_from_company(self, **arguments: Any) -> Response:
        contact_id = _require(arguments, "contact_id")
        company_id = _require(arguments, "company_id")
        return await self.client.api_request(
            "POST", f"/companies/{company_id}/contact/{contact_id}/remove", {}
        )

    # Shared ------------------------------------------------------------------

    async def _get_all(
        self, property_name: str, endpoint: str, query: Dict[str, Any], arguments: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        """Every page when ``return_all`` is set, otherwise one page of ``limit`` items from offset 0"""
        if arguments.get("return_all", False):
            return await self.client.api_request_all_items(property_name, "GET", endpoint, query=query)

        query["limit"] = arguments.get("limit", 50)
        query["start"] = 0
        response_data = await self.client.api_request("GET", endpoint, query=query)
        if response_data.get("errors"):
            raise MauticApiError.from_payload(response_data)
        collection = response_data.get(property_name) or {}
        return list(collection.values()) if isinstance(collection, dict) else list(collection)
