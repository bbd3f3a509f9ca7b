"""
Tests for request_assembler.py
Logic testing: Decision/Branch, Boundary, Path coverage
"""
import json

import pytest

from token_injector import (
    BuildError,
    BuildFailure,
    CredentialPair,
    GraphQLOperation,
    PathConflictError,
    RequestBodySpec,
    RestEndpoint,
    RestParameter,
    build_graphql_request,
    build_rest_request,
)
from token_injector.request_assembler import find_credential_value

from conftest import pairs


def _endpoint(*parameters, body=None, method="POST", path="/login"):
    return RestEndpoint(
        method=method,
        path_template=path,
        parameters=list(parameters),
        request_body=body,
    )


class TestBuildRestRequest:
    """Tests for build_rest_request."""

    def test_body_built_when_required(self):
        endpoint = _endpoint(body=RequestBodySpec(content_type="application/json", required=True))
        request = build_rest_request(
            endpoint, pairs(user__name="john", user__pass="secret"), "https://auth.example.com"
        )

        assert request.method == "POST"
        assert request.url == "https://auth.example.com/login"
        assert json.loads(request.body) == {"user": {"name": "john", "pass": "secret"}}
        assert request.headers == {"Content-Type": "application/json"}

    def test_declared_content_type_used(self):
        endpoint = _endpoint(body=RequestBodySpec(content_type="application/vnd.api+json", required=True))
        request = build_rest_request(endpoint, pairs(a="1"))

        assert request.headers["Content-Type"] == "application/vnd.api+json"

    def test_no_body_when_not_required(self):
        endpoint = _endpoint(body=RequestBodySpec(required=False))
        request = build_rest_request(endpoint, pairs(a="1"))

        assert request.body is None
        assert "Content-Type" not in request.headers

    def test_no_body_when_undeclared(self):
        request = build_rest_request(_endpoint(method="GET"), pairs(a="1"))

        assert request.body is None
        assert request.method == "GET"

    def test_body_conflict_propagates(self):
        endpoint = _endpoint(body=RequestBodySpec(required=True))
        with pytest.raises(PathConflictError):
            build_rest_request(
                endpoint, [CredentialPair(key="a", value="x"), CredentialPair(key="a.b", value="y")]
            )

    def test_header_parameter(self):
        endpoint = _endpoint(RestParameter(location="header", name="X-Tenant", required=True))
        request = build_rest_request(endpoint, pairs(**{"X-Tenant": "acme"}))

        assert request.headers == {"X-Tenant": "acme"}

    def test_query_parameters_keep_declaration_order(self):
        endpoint = _endpoint(
            RestParameter(location="query", name="zeta"),
            RestParameter(location="query", name="alpha"),
            RestParameter(location="query", name="mid"),
        )
        request = build_rest_request(endpoint, pairs(alpha="1", mid="2", zeta="3"), "https://h")

        assert request.url == "https://h/login?zeta=3&alpha=1&mid=2"

    def test_query_values_are_encoded(self):
        endpoint = _endpoint(RestParameter(location="query", name="q"))
        request = build_rest_request(endpoint, pairs(q="a b&c"))

        assert request.url == "/login?q=a+b%26c"

    def test_query_appends_to_existing_query_string(self):
        endpoint = _endpoint(RestParameter(location="query", name="client"), path="/login?v=2")
        request = build_rest_request(endpoint, pairs(client="web"))

        assert request.url == "/login?v=2&client=web"

    def test_path_parameter_substituted_verbatim(self):
        endpoint = _endpoint(
            RestParameter(location="path", name="tenant", required=True),
            path="/tenants/{tenant}/login",
        )
        request = build_rest_request(endpoint, pairs(tenant="acme/eu"), "https://h")

        assert request.url == "https://h/tenants/acme/eu/login"

    def test_lookup_is_flat_exact_match(self):
        endpoint = _endpoint(RestParameter(location="header", name="name", required=True))
        with pytest.raises(BuildError) as exc_info:
            build_rest_request(endpoint, pairs(user__name="john"))

        assert exc_info.value.reason is BuildFailure.MISSING_REQUIRED_PARAMETER
        assert exc_info.value.parameter == "name"

    def test_first_match_wins(self):
        endpoint = _endpoint(RestParameter(location="header", name="X-Key"))
        request = build_rest_request(
            endpoint,
            [CredentialPair(key="X-Key", value="first"), CredentialPair(key="X-Key", value="second")],
        )

        assert request.headers["X-Key"] == "first"

    def test_static_value_fallback(self):
        endpoint = _endpoint(RestParameter(location="header", name="X-Client", value="token-injector"))
        request = build_rest_request(endpoint, [])

        assert request.headers == {"X-Client": "token-injector"}

    def test_optional_missing_parameter_skipped(self):
        endpoint = _endpoint(
            RestParameter(location="header", name="X-Optional"),
            RestParameter(location="query", name="opt"),
        )
        request = build_rest_request(endpoint, [])

        assert request.headers == {}
        assert request.url == "/login"

    # Decision: unresolved optional path placeholder never reaches the wire
    def test_optional_missing_path_parameter_substituted_empty(self):
        endpoint = _endpoint(
            RestParameter(location="path", name="tenant"),
            method="GET",
            path="/t/{tenant}/login",
        )
        request = build_rest_request(endpoint, [], "https://a")

        assert request.url == "https://a/t//login"
        assert "{" not in request.url

    # Boundary: a matched empty value is used, not replaced by the static fallback
    def test_matched_empty_value_wins_over_fallback(self):
        endpoint = _endpoint(RestParameter(location="header", name="X-Client", value="token-injector"))
        request = build_rest_request(endpoint, pairs(**{"X-Client": ""}))

        assert request.headers == {"X-Client": ""}

    def test_first_match_empty_shadows_later_pair(self):
        endpoint = _endpoint(RestParameter(location="query", name="client"))
        request = build_rest_request(
            endpoint,
            [CredentialPair(key="client", value=""), CredentialPair(key="client", value="web")],
        )

        assert request.url == "/login?client="

    def test_required_missing_parameter(self):
        endpoint = _endpoint(RestParameter(location="query", name="client_id", required=True))
        with pytest.raises(BuildError) as exc_info:
            build_rest_request(endpoint, [])

        assert exc_info.value.reason is BuildFailure.MISSING_REQUIRED_PARAMETER

    # Boundary: empty value counts as missing
    def test_required_empty_value(self):
        endpoint = _endpoint(RestParameter(location="query", name="client_id", required=True))
        with pytest.raises(BuildError):
            build_rest_request(endpoint, pairs(client_id=""))

    @pytest.mark.parametrize("location", ["body", "cookie", ""])
    def test_unsupported_location(self, location):
        endpoint = _endpoint(RestParameter(location=location, name="x"))
        with pytest.raises(BuildError) as exc_info:
            build_rest_request(endpoint, pairs(x="1"))

        assert exc_info.value.reason is BuildFailure.UNSUPPORTED_LOCATION

    def test_location_case_insensitive(self):
        endpoint = _endpoint(RestParameter(location="HEADER", name="X-A"))
        request = build_rest_request(endpoint, pairs(**{"X-A": "1"}))

        assert request.headers == {"X-A": "1"}


class TestBuildGraphQLRequest:
    """Tests for build_graphql_request."""

    def test_query_and_variables(self):
        operation = GraphQLOperation(name="login", operation_type="mutation")
        request = build_graphql_request(
            operation, pairs(input__email="jane@example.com", input__password="pw")
        )

        assert request.query == "mutation login"
        assert request.variables == {"input": {"email": "jane@example.com", "password": "pw"}}
        assert request.to_payload() == {
            "query": "mutation login",
            "variables": {"input": {"email": "jane@example.com", "password": "pw"}},
        }

    def test_query_operation(self):
        request = build_graphql_request(GraphQLOperation(name="token", operation_type="QUERY"), [])

        assert request.query == "query token"
        assert request.to_payload() == {"query": "query token"}

    def test_variables_conflict_propagates(self):
        with pytest.raises(PathConflictError):
            build_graphql_request(
                GraphQLOperation(name="login", operation_type="mutation"),
                [CredentialPair(key="a", value="x"), CredentialPair(key="a.b", value="y")],
            )


class TestFindCredentialValue:
    def test_absent(self):
        assert find_credential_value(pairs(a="1"), "b") is None
