import pytest

from app.crm.db import session_scope
from app.crm.errors import DuplicateFieldError, NotFoundError
from app.crm.modules.conversations.service import create_conversation, list_customer_conversations
from app.crm.modules.fields.service import create_field
from app.crm.testing import GraphQLRequestError, graphql_request, user_factory

CUSTOMER_FIELDS = """
    id
    firstName
    lastName
    primaryEmail
    emails
    primaryPhone
    phones
    ownerId
    tagIds
    companyIds
    integrationId
    customFieldsData
    messengerData
    createdAt
    updatedAt
"""

ADD = f"""
mutation Add($input: CustomerInput!) {{
  customersAdd(input: $input) {{ {CUSTOMER_FIELDS} }}
}}
"""

EDIT = f"""
mutation Edit($id: ID!, $input: CustomerInput!) {{
  customersEdit(id: $id, input: $input) {{ {CUSTOMER_FIELDS} }}
}}
"""

DETAIL = f"""
query Detail($id: ID!) {{
  customerDetail(id: $id) {{ {CUSTOMER_FIELDS} companies {{ id name }} }}
}}
"""

REMOVE = """
mutation Remove($ids: [ID!]!) {
  customersRemove(customerIds: $ids)
}
"""

MERGE = f"""
mutation Merge($ids: [ID!]!, $fields: CustomerInput!) {{
  customersMerge(customerIds: $ids, customerFields: $fields) {{ {CUSTOMER_FIELDS} }}
}}
"""


def _add(s, user=None, **fields):
    return graphql_request(s, ADD, "customersAdd", {"input": fields}, user=user)


def test_customers_add_and_detail(app):
    with session_scope(app) as s:
        u = user_factory(s)
        age = create_field(s, text="Age", validation="number")
        added = _add(
            s,
            user=u,
            firstName="Ada",
            primaryEmail="ada@example.com",
            emails=["ada@work.example.com"],
            customFieldsData={str(age.id): "36"},
        )
        assert added["firstName"] == "Ada"
        assert added["ownerId"] == str(u.id)
        assert added["emails"] == ["ada@work.example.com"]
        assert added["customFieldsData"] == {str(age.id): 36}
        assert added["createdAt"] == added["updatedAt"]

        detail = graphql_request(s, DETAIL, "customerDetail", {"id": added["id"]})
        assert detail["primaryEmail"] == "ada@example.com"
        assert detail["companies"] == []

        assert graphql_request(s, DETAIL, "customerDetail", {"id": "424242"}) is None


def test_customers_add_duplicate_raises_domain_error(app):
    with session_scope(app) as s:
        _add(s, primaryEmail="ada@example.com")
        with pytest.raises(DuplicateFieldError) as ei:
            _add(s, primaryEmail="ada@example.com")
    assert str(ei.value) == "Duplicated email"


def test_customers_edit(app):
    with session_scope(app) as s:
        added = _add(s, firstName="Ada", lastName="Byron")
        edited = graphql_request(s, EDIT, "customersEdit", {"id": added["id"], "input": {"lastName": "Lovelace"}})
        assert edited["firstName"] == "Ada"
        assert edited["lastName"] == "Lovelace"

        with pytest.raises(NotFoundError):
            graphql_request(s, EDIT, "customersEdit", {"id": "424242", "input": {"lastName": "X"}})


def test_customers_list_search_and_paging(app):
    with session_scope(app) as s:
        for name in ("Ada", "Bob", "Cy"):
            _add(s, firstName=name)
        found = graphql_request(s, '{ customers(searchValue: "bo") { firstName } }', "customers")
        assert found == [{"firstName": "Bob"}]
        page = graphql_request(s, "{ customers(page: 2, perPage: 2) { id } }", "customers")
        assert len(page) == 1


def test_customers_messenger_toggles(app):
    with session_scope(app) as s:
        added = _add(s, firstName="Ada")
        off = graphql_request(
            s,
            "mutation($id: ID!) { customersMarkAsNotActive(id: $id) { messengerData } }",
            "customersMarkAsNotActive",
            {"id": added["id"]},
        )
        assert off["messengerData"]["is_active"] is False
        on = graphql_request(
            s,
            "mutation($id: ID!) { customersMarkAsActive(id: $id) { messengerData } }",
            "customersMarkAsActive",
            {"id": added["id"]},
        )
        assert on["messengerData"]["is_active"] is True


def test_customers_companies(app):
    with session_scope(app) as s:
        added = _add(s, firstName="Ada")
        company = graphql_request(
            s,
            'mutation($id: ID!) { customersAddCompany(id: $id, name: "Acme", website: "https://acme.test") { id name website } }',
            "customersAddCompany",
            {"id": added["id"]},
        )
        assert company["name"] == "Acme"

        detail = graphql_request(s, DETAIL, "customerDetail", {"id": added["id"]})
        assert detail["companyIds"] == [company["id"]]
        assert detail["companies"] == [{"id": company["id"], "name": "Acme"}]

        edited = graphql_request(
            s,
            "mutation($id: ID!, $ids: [ID!]!) { customersEditCompanies(id: $id, companyIds: $ids) { companyIds } }",
            "customersEditCompanies",
            {"id": added["id"], "ids": []},
        )
        assert edited["companyIds"] == []


def test_customers_remove(app):
    with session_scope(app) as s:
        a = _add(s, firstName="Ada")
        b = _add(s, firstName="Bob")
        create_conversation(s, customer_id=int(a["id"]), content="Hi")

        removed = graphql_request(s, REMOVE, "customersRemove", {"ids": [a["id"], b["id"]]})
        assert removed == [a["id"], b["id"]]
        assert list_customer_conversations(s, int(a["id"])) == []
        assert graphql_request(s, "{ customers { id } }", "customers") == []


def test_customers_remove_respects_batch_limit(app):
    with session_scope(app) as s:
        a = _add(s, firstName="Ada")
        b = _add(s, firstName="Bob")
        with pytest.raises(ValueError, match="At most 1"):
            graphql_request(s, REMOVE, "customersRemove", {"ids": [a["id"], b["id"]]}, max_batch=1)


def test_customers_merge(app):
    with session_scope(app) as s:
        a = _add(s, firstName="Ada", tagIds=["t1"], integrationId="int-a", primaryEmail="ada@example.com")
        b = _add(s, firstName="Ada L", tagIds=["t2"], integrationId="int-b")

        merged = graphql_request(
            s,
            MERGE,
            "customersMerge",
            {"ids": [a["id"], b["id"]], "fields": {"firstName": "Ada", "primaryEmail": "ada@example.com"}},
        )
        assert sorted(merged["tagIds"]) == ["t1", "t2"]
        assert merged["integrationId"] == "int-b"
        assert merged["emails"] == ["ada@example.com"]
        assert merged["id"] not in (a["id"], b["id"])
        assert graphql_request(s, DETAIL, "customerDetail", {"id": a["id"]}) is None


def test_customers_import(app):
    with session_scope(app) as s:
        result = graphql_request(
            s,
            """
            mutation($names: [String!]!, $values: [[String]!]!) {
              customersImport(fieldNames: $names, fieldValues: $values) {
                total success failed ids errors { rowNumber message }
              }
            }
            """,
            "customersImport",
            {"names": ["first_name", "primary_email"], "values": [["Ada", "ada@example.com"], ["Bob", "ada@example.com"]]},
        )
        assert result["total"] == 2
        assert result["success"] == 1
        assert result["errors"] == [{"rowNumber": 3, "message": "Duplicated email"}]


def test_invalid_query_raises_request_error(app):
    with session_scope(app) as s:
        with pytest.raises(GraphQLRequestError):
            graphql_request(s, "{ customers { noSuchField } }", "customers")
