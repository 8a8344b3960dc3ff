"""
Tests for argument-to-Mautic field mapping.
"""

from datetime import datetime, timezone

import pytest

from mcp_mautic_connector import MauticOperationError
from mcp_mautic_connector.field_mapper import (
    build_company_body,
    build_contact_create_body,
    build_contact_update_body,
    build_list_query,
    custom_field_values,
    format_last_active,
    snake_case,
)


class TestContactBodies:
    """Tests for contact create and update bodies."""

    def test_none_values_are_never_sent(self):
        body = build_contact_create_body(
            {
                "email": "ada@example.com",
                "additional_fields": {"fax": None, "mobile": "555", "address": {"city": None}},
            }
        )

        assert body["mobile"] == "555"
        assert "fax" not in body
        assert "city" not in body
        assert None not in body.values()

    def test_falsy_values_are_present(self):
        body = build_contact_update_body({"sandbox": False, "has_purchased": False, "tags": []})

        assert body == {"sandbox": False, "haspurchased": False, "tags": []}

    def test_json_body_must_be_an_object(self):
        with pytest.raises(MauticOperationError, match="Invalid JSON"):
            build_contact_create_body({"json_parameters": True, "body_json": "[1, 2]"})

    def test_discrete_fields_passed_as_none_are_sent_empty(self):
        body = build_contact_create_body(
            {"email": "ada@example.com", "first_name": None, "title": None, "additional_fields": None}
        )

        assert body["firstname"] == ""
        assert body["title"] == ""
        assert None not in body.values()

    def test_update_without_fields_is_empty(self):
        assert build_contact_update_body({}) == {}


class TestCompanyBodies:
    """Tests for company create and update bodies."""

    def test_unknown_keys_are_forwarded(self):
        body = build_company_body({"companyscore": 10, "industry": "Retail"}, {"companyname": "Acme"})

        assert body == {"companyname": "Acme", "companyscore": 10, "companyindustry": "Retail"}

    def test_name_maps_to_companyname(self):
        assert build_company_body({"name": "Globex"}) == {"companyname": "Globex"}

    def test_social_media_group_is_flattened(self):
        body = build_company_body(
            {"social_media": {"twitter": "@acme", "facebook": None}}, {"companyname": "Acme"}
        )

        assert body == {"companyname": "Acme", "twitter": "@acme"}

    def test_required_values_win_over_optional_fields(self):
        body = build_company_body({"name": "Other", "phone": "555"}, {"companyname": "Acme"})

        assert body == {"companyname": "Acme", "companyphone": "555"}

    def test_address_group_uses_company_aliases(self):
        body = build_company_body({"address": {"address1": "1 Main St", "country": "France"}})

        assert body == {"companyaddress1": "1 Main St", "companycountry": "France"}


class TestListQuery:
    """Tests for getAll query options."""

    def test_maps_known_options_only(self):
        query = build_list_query(
            {"search": "is:mine", "published_only": True, "raw_data": False, "minimal": True}
        )

        assert query == {"search": "is:mine", "publishedOnly": True, "minimal": True}

    def test_empty_options(self):
        assert build_list_query({}) == {}


class TestHelpers:
    """Tests for the small conversion helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("dateAdded", "date_added"),
            ("lastActive", "last_active"),
            ("firstname", "firstname"),
            ("DateIdentified", "date_identified"),
            ("IPAddress", "ip_address"),
            ("date added", "date_added"),
        ],
    )
    def test_snake_case(self, value, expected):
        assert snake_case(value) == expected

    def test_custom_fields_skip_entries_without_id(self):
        values = custom_field_values(
            [{"field_id": "tier", "field_value": "gold"}, {"field_value": "orphan"}]
        )

        assert values == {"tier": "gold"}

    def test_last_active_from_iso_string(self):
        assert format_last_active("2024-03-01T12:15:00+02:00") == "2024-03-01 10:15:00"

    def test_last_active_from_datetime(self):
        value = datetime(2024, 3, 1, 10, 15, tzinfo=timezone.utc)

        assert format_last_active(value) == "2024-03-01 10:15:00"

    def test_last_active_rejects_garbage(self):
        with pytest.raises(MauticOperationError, match="last_active"):
            format_last_active("yesterday-ish")
