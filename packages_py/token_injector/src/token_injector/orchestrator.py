"""
Auth orchestrator: resolves the token for a service from its declaration.

Auth types:
- NONE: no token; the caller adds no header.
- BASIC: "Basic <base64(username:password)>" from the credential pairs.
- APITOKEN: the declared api key, verbatim.
- LOGIN: token from the cache, from the declaration, or from a login call
  against the declared REST/GraphQL endpoint, then cached.

LOGIN and APITOKEN tokens are returned bare; adding a "Bearer " prefix is
the caller's decision.
"""
import base64
import json
import logging
from typing import Callable, Dict, Iterable, Optional, Tuple

from .config import DEFAULT_CONFIG, TokenInjectorConfig
from .errors import (
    BuildError,
    BuildFailure,
    ExtractionError,
    ExtractionFailure,
    MissingCredentialFieldError,
    TokenInjectorError,
    TransportError,
)
from .request_assembler import build_graphql_request, build_rest_request
from .singleflight import Singleflight
from .token_cache import TokenCache
from .token_extractor import extract_token
from .transport import HttpxTransport, Transport, TransportResponse
from .types import (
    AuthType,
    CredentialDeclaration,
    CredentialPair,
    EndpointType,
    GraphQLOperation,
    RestEndpoint,
)

logger = logging.getLogger(__name__)

USERNAME_KEYS = ("username", "user")
PASSWORD_KEYS = ("password", "pass")

REST_ACCEPTED_STATUSES = frozenset({200, 201})
GRAPHQL_ACCEPTED_STATUSES = frozenset({200})

_ERROR_BODY_PREVIEW = 200

Strategy = Callable[[str, CredentialDeclaration], str]


def _mask_value(val: Optional[str]) -> str:
    """Mask sensitive value for logging, showing first 4 chars."""
    if not val:
        return "<empty>"
    if len(val) <= 4:
        return "*" * len(val)
    return val[:4] + "*" * (len(val) - 4)


def _first_credential(pairs: Iterable[CredentialPair], keys: Tuple[str, ...]) -> Optional[str]:
    for pair in pairs:
        if pair.key in keys:
            return pair.value
    return None


class AuthOrchestrator:
    """
    Dispatches token resolution on the declared auth type.

    The cache, configuration and transport are injected; the orchestrator keeps
    no state of its own, so one instance can serve many caller threads.

    Example:
        orchestrator = AuthOrchestrator(TokenCache(), TokenInjectorConfig())
        token = orchestrator.resolve_token("svc-1", declaration)
        if token:
            headers["Authorization"] = token
    """

    def __init__(
        self,
        cache: Optional[TokenCache] = None,
        config: Optional[TokenInjectorConfig] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self._config = config or DEFAULT_CONFIG
        self._cache = cache if cache is not None else TokenCache(self._config.token_refresh_buffer)
        self._owns_transport = transport is None
        self._transport = transport or HttpxTransport(
            timeout_seconds=self._config.timeout_seconds,
            verify_ssl=self._config.verify_ssl,
        )
        self._singleflight = Singleflight() if self._config.dedupe_in_flight else None
        self._strategies: Dict[AuthType, Strategy] = {
            AuthType.NONE: self._resolve_none,
            AuthType.BASIC: self._resolve_basic,
            AuthType.APITOKEN: self._resolve_api_token,
            AuthType.LOGIN: self._resolve_login,
        }

    @property
    def cache(self) -> TokenCache:
        return self._cache

    @property
    def config(self) -> TokenInjectorConfig:
        return self._config

    def resolve_token(self, service_id: str, declaration: CredentialDeclaration) -> str:
        """
        Resolve the auth header value for ``service_id``.

        Returns an empty string when no header should be added. Any failure is
        raised as a TokenInjectorError annotated with the service id and auth
        type; no partial token is ever returned.
        """
        auth_type = None
        try:
            auth_type = AuthType.parse(declaration.auth_type)
            logger.debug(f"resolve_token: service_id={service_id}, auth_type={auth_type.value}")
            token = self._strategies[auth_type](service_id, declaration)
        except TokenInjectorError as e:
            e.annotate(service_id=service_id, auth_type=auth_type or declaration.auth_type)
            logger.warning(f"resolve_token: failed: {e}")
            raise
        return token

    def invalidate(self, service_id: str) -> bool:
        """Drop the cached token for ``service_id``, e.g. after a downstream 401."""
        return self._cache.delete(service_id)

    def close(self) -> None:
        """Close the transport if this orchestrator created it."""
        if self._owns_transport:
            self._transport.close()

    def __enter__(self) -> "AuthOrchestrator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # === Static strategies ===

    def _resolve_none(self, service_id: str, declaration: CredentialDeclaration) -> str:
        return ""

    def _resolve_basic(self, service_id: str, declaration: CredentialDeclaration) -> str:
        username = _first_credential(declaration.credential_data, USERNAME_KEYS)
        password = _first_credential(declaration.credential_data, PASSWORD_KEYS)
        if not username:
            raise MissingCredentialFieldError("username")
        if not password:
            raise MissingCredentialFieldError("password")

        encoded = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        logger.debug(f"_resolve_basic: username={_mask_value(username)}")
        return f"Basic {encoded}"

    def _resolve_api_token(self, service_id: str, declaration: CredentialDeclaration) -> str:
        if not declaration.api_key:
            raise MissingCredentialFieldError("apiKey")
        logger.debug(f"_resolve_api_token: api_key={_mask_value(declaration.api_key)}")
        return declaration.api_key

    # === LOGIN ===

    def _resolve_login(self, service_id: str, declaration: CredentialDeclaration) -> str:
        if self._config.cache_enabled:
            cached = self._cache.get(service_id)
            if cached.exists and not cached.needs_refresh:
                logger.debug(f"_resolve_login: cache hit for '{service_id}'")
                return cached.token
            if cached.exists:
                logger.info(f"_resolve_login: cached token for '{service_id}' is due for refresh")

        if declaration.token:
            logger.debug(f"_resolve_login: using declared token for '{service_id}'")
            self._store(service_id, declaration.token, declaration.token_ttl_seconds)
            return declaration.token

        if self._singleflight is not None:
            result = self._singleflight.do(
                service_id, lambda: self._acquire_token(service_id, declaration)
            )
            return result.value
        return self._acquire_token(service_id, declaration)

    def _acquire_token(self, service_id: str, declaration: CredentialDeclaration) -> str:
        token = self._fetch_token(declaration)
        self._store(service_id, token, declaration.token_ttl_seconds)
        logger.info(
            f"_acquire_token: obtained token for '{service_id}' "
            f"(ttl={declaration.token_ttl_seconds}, token={_mask_value(token)})"
        )
        return token

    def _store(self, service_id: str, token: str, ttl_seconds: Optional[int]) -> None:
        if self._config.cache_enabled:
            self._cache.set(service_id, token, ttl_seconds, self._config.token_refresh_buffer)

    def _fetch_token(self, declaration: CredentialDeclaration) -> str:
        if not declaration.token_location:
            raise ExtractionError(ExtractionFailure.EMPTY_PATH, "token location is empty")

        descriptor = declaration.endpoint_descriptor
        if descriptor is None:
            raise BuildError(BuildFailure.INVALID_ENDPOINT, "no authentication endpoint configured")

        if declaration.endpoint_type is EndpointType.REST and isinstance(descriptor, RestEndpoint):
            return self._call_rest_endpoint(descriptor, declaration)
        if declaration.endpoint_type is EndpointType.GRAPHQL and isinstance(descriptor, GraphQLOperation):
            return self._call_graphql_endpoint(descriptor, declaration)

        declared = getattr(declaration.endpoint_type, "value", None)
        raise BuildError(
            BuildFailure.INVALID_ENDPOINT,
            f"endpoint type {declared!r} does not match a {type(descriptor).__name__} descriptor",
        )

    def _call_rest_endpoint(self, endpoint: RestEndpoint, declaration: CredentialDeclaration) -> str:
        request = build_rest_request(endpoint, declaration.credential_data, declaration.base_url)
        response = self._transport.send(request.method, request.url, request.headers, request.body)
        _check_status(response, REST_ACCEPTED_STATUSES, request.url, "authentication endpoint")
        return extract_token(response.body, declaration.token_location)

    def _call_graphql_endpoint(
        self, operation: GraphQLOperation, declaration: CredentialDeclaration
    ) -> str:
        if not operation.url:
            raise BuildError(
                BuildFailure.MISSING_ENDPOINT_URL,
                f"GraphQL operation '{operation.name}' has no endpoint url",
            )

        request = build_graphql_request(operation, declaration.credential_data)
        try:
            content = json.dumps(request.to_payload()).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise BuildError(
                BuildFailure.SERIALIZATION_FAILURE, f"failed to serialize GraphQL request: {e}"
            ) from e

        response = self._transport.send(
            "POST", operation.url, {"Content-Type": "application/json"}, content
        )
        _check_status(response, GRAPHQL_ACCEPTED_STATUSES, operation.url, "GraphQL endpoint")
        return extract_token(response.body, declaration.token_location)


def _check_status(
    response: TransportResponse,
    accepted: frozenset,
    url: str,
    label: str,
) -> None:
    if response.status_code in accepted:
        return
    preview = response.body[:_ERROR_BODY_PREVIEW].decode("utf-8", errors="replace")
    raise TransportError(
        f"{label} returned status {response.status_code}: {preview}",
        status_code=response.status_code,
        url=url,
    )


def create_auth_orchestrator(
    config: Optional[TokenInjectorConfig] = None,
    cache: Optional[TokenCache] = None,
    transport: Optional[Transport] = None,
) -> AuthOrchestrator:
    """Create an orchestrator with its own cache unless one is supplied."""
    return AuthOrchestrator(cache, config, transport)
