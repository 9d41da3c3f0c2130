from __future__ import annotations

from typing import Any

import graphene
from graphene.types.generic import GenericScalar

from app.crm.modules.companies.models import Company
from app.crm.modules.customers.service import (
    add_company,
    bulk_insert_customers,
    create_customer,
    get_customer_by_id,
    list_customers,
    mark_customer_as_active,
    mark_customer_as_not_active,
    merge_customers,
    remove_customer,
    update_companies,
    update_customer,
)


def _session(info):
    return info.context["session"]


def _user(info):
    return info.context.get("user")


def _int_ids(values) -> list[int]:
    return [int(v) for v in (values or [])]


def _check_batch(info, ids: list[int]) -> None:
    limit = int(info.context.get("max_batch") or 500)
    if len(ids) > limit:
        raise ValueError(f"At most {limit} customers per call.")


def _doc(fields) -> dict[str, Any]:
    doc = dict(fields)
    if doc.get("owner_id") is not None:
        doc["owner_id"] = int(doc["owner_id"])
    if "company_ids" in doc:
        doc["company_ids"] = _int_ids(doc["company_ids"])
    return doc


class CompanyType(graphene.ObjectType):
    class Meta:
        name = "Company"

    id = graphene.ID(required=True)
    name = graphene.String()
    website = graphene.String()
    created_at = graphene.DateTime()


class CustomerType(graphene.ObjectType):
    class Meta:
        name = "Customer"

    id = graphene.ID(required=True)
    first_name = graphene.String()
    last_name = graphene.String()
    full_name = graphene.String()

    primary_email = graphene.String()
    emails = graphene.List(graphene.NonNull(graphene.String))
    primary_phone = graphene.String()
    phones = graphene.List(graphene.NonNull(graphene.String))

    owner_id = graphene.ID()
    position = graphene.String()
    department = graphene.String()
    lead_status = graphene.String()
    lifecycle_state = graphene.String()
    has_authority = graphene.String()
    description = graphene.String()
    do_not_disturb = graphene.String()
    links = GenericScalar()
    is_user = graphene.Boolean()
    integration_id = graphene.String()

    tag_ids = graphene.List(graphene.NonNull(graphene.String))
    company_ids = graphene.List(graphene.NonNull(graphene.ID))
    companies = graphene.List(graphene.NonNull(CompanyType))

    custom_fields_data = GenericScalar()
    messenger_data = GenericScalar()
    twitter_data = GenericScalar()
    facebook_data = GenericScalar()
    location = GenericScalar()
    visitor_contact_info = GenericScalar()
    url_visits = GenericScalar()

    created_at = graphene.DateTime()
    updated_at = graphene.DateTime()

    def resolve_companies(root, info):
        ids = _int_ids(root.company_ids)
        if not ids:
            return []
        return _session(info).query(Company).filter(Company.id.in_(ids)).order_by(Company.id.asc()).all()


class CustomerInput(graphene.InputObjectType):
    first_name = graphene.String()
    last_name = graphene.String()
    primary_email = graphene.String()
    emails = graphene.List(graphene.String)
    primary_phone = graphene.String()
    phones = graphene.List(graphene.String)
    owner_id = graphene.ID()
    position = graphene.String()
    department = graphene.String()
    lead_status = graphene.String()
    lifecycle_state = graphene.String()
    has_authority = graphene.String()
    description = graphene.String()
    do_not_disturb = graphene.String()
    links = GenericScalar()
    is_user = graphene.Boolean()
    integration_id = graphene.String()
    tag_ids = graphene.List(graphene.String)
    company_ids = graphene.List(graphene.ID)
    custom_fields_data = GenericScalar()
    messenger_data = GenericScalar()
    twitter_data = GenericScalar()
    facebook_data = GenericScalar()
    location = GenericScalar()
    visitor_contact_info = GenericScalar()
    url_visits = GenericScalar()


class ImportErrorType(graphene.ObjectType):
    class Meta:
        name = "ImportError"

    row_number = graphene.Int()
    message = graphene.String()


class ImportResultType(graphene.ObjectType):
    class Meta:
        name = "ImportResult"

    total = graphene.Int()
    success = graphene.Int()
    failed = graphene.Int()
    ids = graphene.List(graphene.NonNull(graphene.ID))
    errors = graphene.List(graphene.NonNull(ImportErrorType))


class CustomerQuery:
    customers = graphene.List(
        graphene.NonNull(CustomerType),
        search_value=graphene.String(),
        page=graphene.Int(default_value=1),
        per_page=graphene.Int(default_value=20),
    )
    customer_detail = graphene.Field(CustomerType, id=graphene.ID(required=True))

    def resolve_customers(root, info, search_value=None, page=1, per_page=20):
        page = max(page or 1, 1)
        per_page = min(max(per_page or 20, 1), 100)
        return list_customers(_session(info), q=search_value, limit=per_page, offset=(page - 1) * per_page)

    def resolve_customer_detail(root, info, id):
        return get_customer_by_id(_session(info), int(id))


class CustomersAdd(graphene.Mutation):
    class Arguments:
        input = CustomerInput(required=True)

    Output = CustomerType

    def mutate(root, info, input):
        return create_customer(_session(info), _doc(input), _user(info))


class CustomersEdit(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)
        input = CustomerInput(required=True)

    Output = CustomerType

    def mutate(root, info, id, input):
        return update_customer(_session(info), int(id), _doc(input), user=_user(info))


class CustomersAddCompany(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)
        name = graphene.String(required=True)
        website = graphene.String()

    Output = CompanyType

    def mutate(root, info, id, name, website=None):
        return add_company(_session(info), int(id), name=name, website=website)


class CustomersEditCompanies(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)
        company_ids = graphene.List(graphene.NonNull(graphene.ID), required=True)

    Output = CustomerType

    def mutate(root, info, id, company_ids):
        return update_companies(_session(info), int(id), _int_ids(company_ids))


class CustomersMarkAsActive(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)

    Output = CustomerType

    def mutate(root, info, id):
        return mark_customer_as_active(_session(info), int(id))


class CustomersMarkAsNotActive(graphene.Mutation):
    class Arguments:
        id = graphene.ID(required=True)

    Output = CustomerType

    def mutate(root, info, id):
        return mark_customer_as_not_active(_session(info), int(id))


class CustomersRemove(graphene.Mutation):
    class Arguments:
        customer_ids = graphene.List(graphene.NonNull(graphene.ID), required=True)

    Output = graphene.List(graphene.NonNull(graphene.ID))

    def mutate(root, info, customer_ids):
        ids = _int_ids(customer_ids)
        _check_batch(info, ids)
        s = _session(info)
        for customer_id in ids:
            remove_customer(s, customer_id, user=_user(info))
        return ids


class CustomersMerge(graphene.Mutation):
    class Arguments:
        customer_ids = graphene.List(graphene.NonNull(graphene.ID), required=True)
        customer_fields = CustomerInput(required=True)

    Output = CustomerType

    def mutate(root, info, customer_ids, customer_fields):
        ids = _int_ids(customer_ids)
        _check_batch(info, ids)
        return merge_customers(_session(info), ids, _doc(customer_fields), user=_user(info))


class CustomersImport(graphene.Mutation):
    class Arguments:
        field_names = graphene.List(graphene.NonNull(graphene.String), required=True)
        field_values = graphene.List(graphene.NonNull(graphene.List(graphene.String)), required=True)

    Output = ImportResultType

    def mutate(root, info, field_names, field_values):
        return bulk_insert_customers(_session(info), field_names, field_values, user=_user(info))


class CustomerMutation:
    customers_add = CustomersAdd.Field()
    customers_edit = CustomersEdit.Field()
    customers_add_company = CustomersAddCompany.Field()
    customers_edit_companies = CustomersEditCompanies.Field()
    customers_mark_as_active = CustomersMarkAsActive.Field()
    customers_mark_as_not_active = CustomersMarkAsNotActive.Field()
    customers_remove = CustomersRemove.Field()
    customers_merge = CustomersMerge.Field()
    customers_import = CustomersImport.Field()
