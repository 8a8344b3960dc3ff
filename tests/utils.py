"""Record builders shaped like Mautic API payloads."""


def company_record(company_id, name, **fields):
    """A company with its flattened field mapping."""
    all_fields = {"id": company_id, "companyname": name, **fields}
    return {"id": company_id, "fields": {"all": all_fields, "core": {}}}


def contact_record(contact_id, email, **fields):
    """A contact with its flattened field mapping."""
    all_fields = {"id": contact_id, "email": email, **fields}
    return {"id": contact_id, "isPublished": True, "fields": {"all": all_fields, "core": {}}}
