"""
Type definitions for token_injector.

Declaration models are pydantic models so they can be validated straight from
the directory's JSON payload (camelCase keys). Runtime records produced by the
engine are plain dataclasses.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import UnsupportedAuthTypeError, UnsupportedEndpointTypeError


class AuthType(str, Enum):
    """Auth mechanism declared for a service."""

    BASIC = "BASIC"
    LOGIN = "LOGIN"
    APITOKEN = "APITOKEN"
    NONE = "NONE"

    @classmethod
    def parse(cls, value: Any) -> "AuthType":
        """Parse a declared auth type, rejecting unknown values explicitly."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise UnsupportedAuthTypeError(value)


class EndpointType(str, Enum):
    """Protocol of the login endpoint."""

    REST = "REST"
    GRAPHQL = "GRAPHQL"

    @classmethod
    def parse(cls, value: Any) -> Optional["EndpointType"]:
        """Parse a declared endpoint type; empty means not declared."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise UnsupportedEndpointTypeError(value)


class ParameterLocation(str, Enum):
    QUERY = "query"
    HEADER = "header"
    PATH = "path"


class OperationType(str, Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


class _WireModel(BaseModel):
    """Base for models parsed from the directory payload."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CredentialPair(_WireModel):
    """Flat credential value addressed by a dotted path, e.g. ``user.name``."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str

    def __repr__(self) -> str:
        # Values are secrets more often than not.
        return f"CredentialPair(key={self.key!r}, value=<{len(self.value)} chars>)"


class RestParameter(_WireModel):
    """Declared REST parameter.

    ``name`` is the credential key looked up (flat, exact match); ``value`` is a
    static fallback used when no credential pair carries that key.
    """

    location: str
    name: str
    required: bool = False
    value: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_directory_shape(cls, data: Any) -> Any:
        # The directory names the parameter in "value" and its fallback in "default".
        if isinstance(data, dict) and "name" not in data and "value" in data:
            data = dict(data)
            data["name"] = data.pop("value")
            data["value"] = data.pop("default", None) or None
        return data


class RequestBodySpec(_WireModel):
    content_type: str = "application/json"
    required: bool = False

    @field_validator("content_type", mode="before")
    @classmethod
    def _default_content_type(cls, value: Any) -> Any:
        return value or "application/json"


class RestEndpoint(_WireModel):
    """REST login endpoint declaration."""

    method: str
    path_template: str = Field(
        validation_alias=AliasChoices("pathTemplate", "path_template", "path")
    )
    parameters: List[RestParameter] = Field(default_factory=list)
    request_body: Optional[RequestBodySpec] = None

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("parameters", mode="before")
    @classmethod
    def _null_parameters(cls, value: Any) -> Any:
        return value or []


class GraphQLOperation(_WireModel):
    """GraphQL login operation declaration.

    ``url`` is the GraphQL endpoint the operation is posted to; the directory
    has no field for it, so it must be supplied explicitly for LOGIN to work.
    """

    name: str
    operation_type: OperationType
    url: Optional[str] = None

    @field_validator("operation_type", mode="before")
    @classmethod
    def _lower_operation_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


EndpointDescriptor = Union[RestEndpoint, GraphQLOperation]


def _coerce_endpoint_node(node: Any) -> Any:
    """Pick the endpoint variant for a raw directory node."""
    if not isinstance(node, dict):
        return node
    if node.get("method"):
        return RestEndpoint.model_validate(node)
    if node.get("operationType") or node.get("operation_type"):
        return GraphQLOperation.model_validate(node)
    return None


class CredentialDeclaration(_WireModel):
    """Declarative description of how a service authenticates."""

    auth_type: AuthType
    endpoint_type: Optional[EndpointType] = None
    credential_data: List[CredentialPair] = Field(default_factory=list)
    token: Optional[str] = None
    token_location: str = ""
    token_ttl_seconds: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("tokenTtlSeconds", "token_ttl_seconds", "tokenTtl"),
    )
    api_key: str = ""
    base_url: str = ""
    endpoint_descriptor: Optional[EndpointDescriptor] = None

    @model_validator(mode="before")
    @classmethod
    def _unwrap_endpoint_connection(cls, data: Any) -> Any:
        # Directory payloads wrap the endpoint as endpointData.edges[0].node
        if not isinstance(data, dict):
            return data
        data = dict(data)
        connection = data.pop("endpointData", None)
        has_descriptor = data.get("endpointDescriptor") or data.get("endpoint_descriptor")
        if connection and not has_descriptor:
            edges = connection.get("edges") or []
            if edges:
                data["endpointDescriptor"] = (edges[0] or {}).get("node")
        for key in ("endpointDescriptor", "endpoint_descriptor"):
            if key in data:
                data[key] = _coerce_endpoint_node(data[key])
        return data

    @field_validator("auth_type", mode="before")
    @classmethod
    def _parse_auth_type(cls, value: Any) -> AuthType:
        return AuthType.parse(value)

    @field_validator("endpoint_type", mode="before")
    @classmethod
    def _parse_endpoint_type(cls, value: Any) -> Optional[EndpointType]:
        return EndpointType.parse(value)

    @field_validator("credential_data", mode="before")
    @classmethod
    def _null_credential_data(cls, value: Any) -> Any:
        return value or []

    @field_validator("api_key", "token_location", "base_url", mode="before")
    @classmethod
    def _null_string(cls, value: Any) -> Any:
        return value or ""

    def __repr__(self) -> str:
        return (
            f"CredentialDeclaration(auth_type={self.auth_type.value!r}, "
            f"endpoint_type={getattr(self.endpoint_type, 'value', None)!r}, "
            f"credential_keys={[pair.key for pair in self.credential_data]!r}, "
            f"has_token={bool(self.token)}, token_location={self.token_location!r}, "
            f"token_ttl_seconds={self.token_ttl_seconds!r}, has_api_key={bool(self.api_key)})"
        )


# ---------------------------------------------------------------------------
# Runtime records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CachedToken:
    """Cached token with epoch-second expiry bookkeeping.

    No ``expires_at``/``refresh_at`` means the token is kept indefinitely.
    """

    value: str
    expires_at: Optional[int] = None
    refresh_at: Optional[int] = None


@dataclass(frozen=True)
class CacheLookupResult:
    """Result of a cache lookup; a copy, never a view into the cache."""

    token: str = ""
    needs_refresh: bool = False
    exists: bool = False


@dataclass
class RestRequest:
    """Ready-to-send REST request."""

    method: str
    url: str
    body: Optional[bytes] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class GraphQLRequest:
    """GraphQL query string and variables."""

    query: str
    variables: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the GraphQL POST."""
        payload: Dict[str, Any] = {"query": self.query}
        if self.variables:
            payload["variables"] = self.variables
        return payload
