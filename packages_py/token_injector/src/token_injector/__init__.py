"""
Credential resolution engine: resolves, caches and shapes auth tokens for
outbound requests from declarative per-service credential descriptions.
"""
from .errors import (
    Stage,
    TokenInjectorError,
    PathConflictError,
    EmptyKeyError,
    ExtractionFailure,
    ExtractionError,
    BuildFailure,
    BuildError,
    TransportError,
    UnsupportedAuthTypeError,
    UnsupportedEndpointTypeError,
    MissingCredentialFieldError,
    ConfigError,
)
from .types import (
    AuthType,
    EndpointType,
    ParameterLocation,
    OperationType,
    CredentialPair,
    RestParameter,
    RequestBodySpec,
    RestEndpoint,
    GraphQLOperation,
    CredentialDeclaration,
    CachedToken,
    CacheLookupResult,
    RestRequest,
    GraphQLRequest,
)
from .nested_object import build_nested_object, set_nested_value
from .token_extractor import extract_token
from .token_cache import ReadWriteLock, TokenCache, create_token_cache
from .request_assembler import build_rest_request, build_graphql_request
from .transport import Transport, TransportResponse, HttpxTransport, create_transport
from .singleflight import Singleflight, SingleflightResult
from .config import TokenInjectorConfig, DEFAULT_CONFIG, config_from_dict, load_config
from .orchestrator import AuthOrchestrator, create_auth_orchestrator


__all__ = [
    # Errors
    "Stage",
    "TokenInjectorError",
    "PathConflictError",
    "EmptyKeyError",
    "ExtractionFailure",
    "ExtractionError",
    "BuildFailure",
    "BuildError",
    "TransportError",
    "UnsupportedAuthTypeError",
    "UnsupportedEndpointTypeError",
    "MissingCredentialFieldError",
    "ConfigError",
    # Types
    "AuthType",
    "EndpointType",
    "ParameterLocation",
    "OperationType",
    "CredentialPair",
    "RestParameter",
    "RequestBodySpec",
    "RestEndpoint",
    "GraphQLOperation",
    "CredentialDeclaration",
    "CachedToken",
    "CacheLookupResult",
    "RestRequest",
    "GraphQLRequest",
    # Builders
    "build_nested_object",
    "set_nested_value",
    "extract_token",
    "build_rest_request",
    "build_graphql_request",
    # Cache
    "ReadWriteLock",
    "TokenCache",
    "create_token_cache",
    # Transport
    "Transport",
    "TransportResponse",
    "HttpxTransport",
    "create_transport",
    "Singleflight",
    "SingleflightResult",
    # Config
    "TokenInjectorConfig",
    "DEFAULT_CONFIG",
    "config_from_dict",
    "load_config",
    # Orchestrator
    "AuthOrchestrator",
    "create_auth_orchestrator",
]

__version__ = "1.0.0"
