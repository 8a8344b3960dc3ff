"""
Tests for the HTTP layer in mcp_mautic_connector.mautic_client.

Requests go through httpx.MockTransport so URLs, headers, query strings
and bodies can be inspected without a Mautic instance.
"""

import json
import logging

import httpx
import pytest

from mcp_mautic_connector import MauticApiClient, MauticApiError, RateLimiter
from mcp_mautic_connector.mautic_client import validate_json
from tests.utils import contact_record


def make_client(handler, **kwargs):
    kwargs.setdefault("username", "admin")
    kwargs.setdefault("password", "secret")
    max_retries = kwargs.pop("max_retries", 0)
    return MauticApiClient(
        logging.getLogger("mcp_mautic_connector.tests"),
        "https://mautic.example.com/",
        rate_limiter=RateLimiter(enabled=False, max_retries=max_retries, retry_delay=0),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestApiRequest:
    """Tests for single requests."""

    @pytest.mark.asyncio
    async def test_basic_auth_request_with_json_body(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"contact": {"id": 1}})

        async with make_client(handler) as client:
            payload = await client.api_request("POST", "/contacts/new", {"email": "a@example.com"})

        assert payload == {"contact": {"id": 1}}
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://mautic.example.com/api/contacts/new"
        assert request.headers["Authorization"].startswith("Basic ")
        assert json.loads(request.content) == {"email": "a@example.com"}

    @pytest.mark.asyncio
    async def test_oauth2_uses_bearer_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"contact": {"id": 1}})

        async with make_client(handler, authentication="oAuth2", access_token="tok") as client:
            await client.api_request("GET", "/contacts/1")

        assert seen[0].headers["Authorization"] == "Bearer tok"
        assert seen[0].content == b""

    @pytest.mark.asyncio
    async def test_query_booleans_are_encoded(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"total": "0", "contacts": []})

        async with make_client(handler) as client:
            await client.api_request(
                "GET", "/contacts", query={"limit": 5, "start": 0, "publishedOnly": True}
            )

        params = seen[0].url.params
        assert params["limit"] == "5"
        assert params["start"] == "0"
        assert params["publishedOnly"] == "true"

    @pytest.mark.asyncio
    async def test_error_status_raises_api_error(self):
        def handler(request):
            return httpx.Response(
                404, json={"errors": [{"code": 404, "message": "Item was not found."}]}
            )

        async with make_client(handler) as client:
            with pytest.raises(MauticApiError, match="Item was not found.") as excinfo:
                await client.api_request("GET", "/contacts/99")

        assert excinfo.value.status_code == 404

    @pytest.mark.asyncio
    async def test_errors_in_successful_response_raise_api_error(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"code": 400, "message": "email: invalid"}]})

        async with make_client(handler) as client:
            with pytest.raises(MauticApiError, match="email: invalid") as excinfo:
                await client.api_request("POST", "/contacts/new", {"email": "x"})

        assert excinfo.value.status_code == 200

    @pytest.mark.asyncio
    async def test_non_json_error_page_keeps_status(self):
        def handler(request):
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        async with make_client(handler) as client:
            with pytest.raises(MauticApiError) as excinfo:
                await client.api_request("GET", "/contacts")

        assert excinfo.value.status_code == 502
        assert excinfo.value.response == {"message": "<html>Bad Gateway</html>"}

    @pytest.mark.asyncio
    async def test_empty_body_reads_as_empty_object(self):
        def handler(request):
            return httpx.Response(200)

        async with make_client(handler) as client:
            assert await client.api_request("POST", "/companies/7/contact/3/add", {}) == {}

    @pytest.mark.asyncio
    async def test_rate_limited_request_is_retried(self):
        responses = [
            httpx.Response(429, json={"errors": [{"code": 429, "message": "Too many requests"}]}),
            httpx.Response(200, json={"contact": {"id": 1}}),
        ]

        def handler(request):
            return responses.pop(0)

        async with make_client(handler, max_retries=1) as client:
            payload = await client.api_request("GET", "/contacts/1")

        assert payload == {"contact": {"id": 1}}
        assert responses == []

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(httpx.ConnectError):
                await client.api_request("GET", "/contacts")


class TestApiRequestAllItems:
    """Tests for the pagination helper."""

    @pytest.mark.asyncio
    async def test_pages_until_total_is_reached(self):
        starts = []

        def handler(request):
            start = int(request.url.params["start"])
            limit = int(request.url.params["limit"])
            starts.append(start)
            ids = range(start, min(start + limit, 65))
            contacts = {str(i): contact_record(i, f"user{i}@example.com") for i in ids}
            return httpx.Response(200, json={"total": "65", "contacts": contacts})

        async with make_client(handler) as client:
            contacts = await client.api_request_all_items(
                "contacts", "GET", "/contacts", query={"search": "user"}
            )

        assert starts == [0, 30, 60]
        assert [contact["id"] for contact in contacts] == list(range(65))

    @pytest.mark.asyncio
    async def test_stops_on_empty_collection(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"total": "0", "tags": []})

        async with make_client(handler) as client:
            assert await client.api_request_all_items("tags", "GET", "/tags") == []

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_stops_when_total_is_missing(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"fields": {"1": {"label": "Email", "alias": "email"}}})

        async with make_client(handler) as client:
            fields = await client.api_request_all_items("fields", "GET", "/fields/contact")

        assert fields == [{"label": "Email", "alias": "email"}]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_page_size_is_configurable(self):
        limits = []

        def handler(request):
            limits.append(request.url.params["limit"])
            return httpx.Response(200, json={"total": "1", "stages": [{"id": 1, "name": "Lead"}]})

        async with make_client(handler, page_size=100) as client:
            await client.api_request_all_items("stages", "GET", "/stages")

        assert limits == ["100"]


class TestValidateJson:
    """Tests for user JSON parsing."""

    def test_object_is_parsed(self):
        assert validate_json('{"email": "a@example.com"}') == {"email": "a@example.com"}

    def test_dict_is_returned_as_is(self):
        body = {"email": "a@example.com"}
        assert validate_json(body) is body

    @pytest.mark.parametrize("value", ["{not json", "[1, 2]", "42", None, ""])
    def test_invalid_or_non_object_returns_none(self, value):
        assert validate_json(value) is None
