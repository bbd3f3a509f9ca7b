"""
Request assembly for login endpoints.

Turns an endpoint declaration plus flat credential pairs into a ready-to-send
REST request or a GraphQL query/variables pair.
"""
import json
import logging
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlencode

from .errors import BuildError, BuildFailure
from .nested_object import build_nested_object
from .types import (
    CredentialPair,
    GraphQLOperation,
    GraphQLRequest,
    ParameterLocation,
    RestEndpoint,
    RestParameter,
    RestRequest,
)

logger = logging.getLogger(__name__)


def find_credential_value(pairs: Iterable[CredentialPair], key: str) -> Optional[str]:
    """First value whose key equals ``key`` exactly; no nested lookup."""
    for pair in pairs:
        if pair.key == key:
            return pair.value
    return None


def _resolve_parameter(param: RestParameter, pairs: Sequence[CredentialPair]) -> Optional[str]:
    value = find_credential_value(pairs, param.name)
    if value is None:
        value = param.value
    if not value and param.required:
        raise BuildError(
            BuildFailure.MISSING_REQUIRED_PARAMETER,
            f"required parameter '{param.name}' not found in credentials",
            parameter=param.name,
        )
    return value


def _parameter_location(param: RestParameter) -> ParameterLocation:
    try:
        return ParameterLocation(param.location.strip().lower())
    except ValueError:
        raise BuildError(
            BuildFailure.UNSUPPORTED_LOCATION,
            f"parameter '{param.name}' has unsupported location '{param.location}'",
            parameter=param.name,
        ) from None


def _serialize_body(pairs: Sequence[CredentialPair]) -> bytes:
    body = build_nested_object(pairs)
    try:
        return json.dumps(body, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise BuildError(
            BuildFailure.SERIALIZATION_FAILURE,
            f"failed to serialize request body: {e}",
        ) from e


def build_rest_request(
    endpoint: RestEndpoint,
    pairs: Sequence[CredentialPair],
    base_url: str = "",
) -> RestRequest:
    """
    Build a REST login request.

    The body (nested JSON of all pairs) is produced only when the endpoint
    declares a required request body. Parameters are resolved by exact key,
    falling back to their declared static value only when no pair matches.
    Missing optional header and query parameters are left out; a missing
    optional path parameter is substituted as an empty string. Query
    parameters keep declaration order; path parameters are substituted
    verbatim.
    """
    url = f"{base_url}{endpoint.path_template}"
    headers = {}
    body = None

    if endpoint.request_body is not None and endpoint.request_body.required:
        body = _serialize_body(pairs)
        headers["Content-Type"] = endpoint.request_body.content_type

    query: List[Tuple[str, str]] = []
    for param in endpoint.parameters:
        location = _parameter_location(param)
        value = _resolve_parameter(param, pairs)
        if location is ParameterLocation.PATH:
            # Unresolved optional placeholders collapse to an empty segment
            url = url.replace("{" + param.name + "}", value or "")
        elif value is None:
            logger.debug(f"build_rest_request: skipping optional parameter '{param.name}'")
        elif location is ParameterLocation.HEADER:
            headers[param.name] = value
        elif location is ParameterLocation.QUERY:
            query.append((param.name, value))

    if query:
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}{urlencode(query)}"

    logger.debug(
        f"build_rest_request: method={endpoint.method}, url={url}, "
        f"headers={sorted(headers)}, has_body={body is not None}"
    )
    return RestRequest(method=endpoint.method, url=url, body=body, headers=headers)


def build_graphql_request(
    operation: GraphQLOperation,
    pairs: Sequence[CredentialPair],
) -> GraphQLRequest:
    """
    Build a GraphQL login request.

    The query is the bare ``"<operation type> <name>"`` form; the field
    selection has to be supplied by the upstream schema owner.
    """
    query = f"{operation.operation_type.value} {operation.name}"
    variables = build_nested_object(pairs)
    logger.debug(f"build_graphql_request: query={query!r}, variables={sorted(variables)}")
    return GraphQLRequest(query=query, variables=variables)
