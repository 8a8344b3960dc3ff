#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Field Mapper Module for MCP Mautic Connector

Translates connector arguments (snake_case, with nested address, social
media and custom field groups) into the flat field aliases Mautic expects.
Only fields present in the arguments reach the request body; nothing is
ever sent as null.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pendulum

from .mautic_client import MauticOperationError, validate_json

CONTACT_FIELDS = {
    "email": "email",
    "first_name": "firstname",
    "last_name": "lastname",
    "company": "company",
    "position": "position",
    "title": "title",
}

CONTACT_ADDITIONAL_FIELDS = {
    "ip_address": "ipAddress",
    "last_active": "lastActive",
    "owner_id": "ownerId",
    "b2b_or_b2c": "b2b_or_b2c",
    "crm_id": "crm_id",
    "fax": "fax",
    "has_purchased": "haspurchased",
    "mobile": "mobile",
    "phone": "phone",
    "prospect_or_customer": "prospect_or_customer",
    "sandbox": "sandbox",
    "stage": "stage",
    "tags": "tags",
    "website": "website",
}

CONTACT_ADDRESS_FIELDS = {
    "address1": "address1",
    "address2": "address2",
    "city": "city",
    "state": "state",
    "country": "country",
    "zip_code": "zipcode",
}

SOCIAL_MEDIA_FIELDS = {
    "facebook": "facebook",
    "foursquare": "foursquare",
    "instagram": "instagram",
    "linkedin": "linkedin",
    "skype": "skype",
    "twitter": "twitter",
}

COMPANY_FIELDS = {
    "name": "companyname",
    "annual_revenue": "companyannual_revenue",
    "company_email": "companyemail",
    "description": "companydescription",
    "fax": "companyfax",
    "industry": "companyindustry",
    "number_of_employees": "companynumber_of_employees",
    "phone": "companyphone",
    "website": "companywebsite",
}

COMPANY_ADDRESS_FIELDS = {
    "address1": "companyaddress1",
    "address2": "companyaddress2",
    "city": "companycity",
    "state": "companystate",
    "country": "companycountry",
    "zip_code": "companyzipcode",
}

LIST_OPTIONS = {
    "search": "search",
    "order_by": "orderBy",
    "order_by_dir": "orderByDir",
    "published_only": "publishedOnly",
    "minimal": "minimal",
}

# Groups flattened explicitly; never forwarded as-is.
NESTED_GROUPS = ("address", "social_media", "custom_fields")

MAUTIC_DATETIME_FORMAT = "YYYY-MM-DD HH:mm:ss"


def copy_present(source: Dict[str, Any], mapping: Dict[str, str], target: Dict[str, Any]) -> None:
    """Copy every key of ``mapping`` present in ``source`` to its Mautic alias"""
    for key, alias in mapping.items():
        if source.get(key) is not None:
            target[alias] = source[key]


def custom_field_values(custom_fields: Optional[Iterable[Dict[str, Any]]]) -> Dict[str, Any]:
    """Flatten ``[{"field_id": ..., "field_value": ...}]`` into ``{field_id: field_value}``"""
    values = {}
    for custom_field in custom_fields or []:
        field_id = custom_field.get("field_id")
        if field_id:
            values[str(field_id)] = custom_field.get("field_value")
    return values


def format_last_active(value: Any) -> str:
    try:
        if isinstance(value, datetime):
            parsed = pendulum.instance(value)
        else:
            parsed = pendulum.parse(str(value))
    except (TypeError, ValueError) as e:
        raise MauticOperationError(f"Invalid last_active value {value!r}: {e}") from e
    if not isinstance(parsed, pendulum.DateTime):
        raise MauticOperationError(f"Invalid last_active value {value!r}: not a date and time")
    return parsed.in_timezone("UTC").format(MAUTIC_DATETIME_FORMAT)


def snake_case(value: str) -> str:
    """dateAdded -> date_added, FirstName -> first_name"""
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value)
    value = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", value)
    value = re.sub(r"[\s\-.]+", "_", value)
    return value.strip("_").lower()


def _or_empty(value: Any) -> Any:
    return "" if value is None else value


def parse_body_json(body_json: Any) -> Dict[str, Any]:
    parsed = validate_json(body_json)
    if parsed is None:
        raise MauticOperationError("Invalid JSON")
    return dict(parsed)


def apply_contact_fields(fields: Dict[str, Any], body: Dict[str, Any]) -> Dict[str, Any]:
    """Layer the optional contact fields on top of ``body``"""
    copy_present(fields, CONTACT_ADDITIONAL_FIELDS, body)
    if fields.get("last_active") is not None:
        body["lastActive"] = format_last_active(fields["last_active"])
    if fields.get("address"):
        copy_present(fields["address"], CONTACT_ADDRESS_FIELDS, body)
    if fields.get("social_media"):
        copy_present(fields["social_media"], SOCIAL_MEDIA_FIELDS, body)
    if fields.get("custom_fields"):
        body.update(custom_field_values(fields["custom_fields"]))
    return body


def build_contact_create_body(arguments: Dict[str, Any]) -> Dict[str, Any]:
    if arguments.get("json_parameters", False):
        body = parse_body_json(arguments.get("body_json"))
    else:
        body = {alias: _or_empty(arguments.get(key)) for key, alias in CONTACT_FIELDS.items()}
    return apply_contact_fields(arguments.get("additional_fields") or {}, body)


def build_contact_update_body(update_fields: Dict[str, Any]) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    copy_present(update_fields, CONTACT_FIELDS, body)
    if update_fields.get("body_json"):
        body = parse_body_json(update_fields["body_json"])
    return apply_contact_fields(update_fields, body)


def build_company_body(
    fields: Dict[str, Any], required: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Company body from optional ``fields``; ``required`` values always win"""
    body: Dict[str, Any] = {}
    known = set(COMPANY_FIELDS) | set(NESTED_GROUPS)
    for key, value in fields.items():
        if key not in known and value is not None:
            body[key] = value
    copy_present(fields, COMPANY_FIELDS, body)
    if fields.get("address"):
        copy_present(fields["address"], COMPANY_ADDRESS_FIELDS, body)
    if fields.get("social_media"):
        copy_present(fields["social_media"], SOCIAL_MEDIA_FIELDS, body)
    if fields.get("custom_fields"):
        body.update(custom_field_values(fields["custom_fields"]))
    body.update(required or {})
    return body


def build_list_query(options: Dict[str, Any]) -> Dict[str, Any]:
    """Query-string options for /companies and /contacts; ``raw_data`` stays local"""
    query: Dict[str, Any] = {}
    copy_present(options, LIST_OPTIONS, query)
    if query.get("orderBy"):
        # Mautic returns camelCase field names but sorts by their snake_case column.
        query["orderBy"] = snake_case(query["orderBy"])
    return query


def fields_all(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [record["fields"]["all"] for record in records]
