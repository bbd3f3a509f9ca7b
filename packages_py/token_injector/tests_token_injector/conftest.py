"""
Shared fixtures for token_injector tests.
"""
import json
from typing import Callable, List, Optional

import httpx
import pytest

from token_injector import (
    AuthType,
    CredentialDeclaration,
    CredentialPair,
    EndpointType,
    GraphQLOperation,
    HttpxTransport,
    RequestBodySpec,
    RestEndpoint,
    TokenCache,
)


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def pairs(**values: str) -> List[CredentialPair]:
    """Build credential pairs; double underscores stand for dots."""
    return [CredentialPair(key=k.replace("__", "."), value=v) for k, v in values.items()]


def mock_transport(handler: Callable[[httpx.Request], httpx.Response]) -> HttpxTransport:
    """HttpxTransport backed by httpx.MockTransport."""
    return HttpxTransport(httpx_client=httpx.Client(transport=httpx.MockTransport(handler)))


def json_response(status_code: int, payload: dict) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_cache(clock: FakeClock) -> TokenCache:
    """Fresh cache per test with a 10 second refresh buffer."""
    return TokenCache(refresh_buffer_seconds=10, clock=clock)


@pytest.fixture
def rest_login_endpoint() -> RestEndpoint:
    return RestEndpoint(
        method="POST",
        path_template="/auth/login",
        request_body=RequestBodySpec(content_type="application/json", required=True),
    )


@pytest.fixture
def rest_login_declaration(rest_login_endpoint: RestEndpoint) -> CredentialDeclaration:
    return CredentialDeclaration(
        auth_type=AuthType.LOGIN,
        endpoint_type=EndpointType.REST,
        credential_data=pairs(user__name="john", user__password="secret"),
        token_location="data.token",
        token_ttl_seconds=20,
        base_url="https://auth.example.com",
        endpoint_descriptor=rest_login_endpoint,
    )


@pytest.fixture
def graphql_login_declaration() -> CredentialDeclaration:
    return CredentialDeclaration(
        auth_type=AuthType.LOGIN,
        endpoint_type=EndpointType.GRAPHQL,
        credential_data=pairs(input__email="jane@example.com", input__password="pw"),
        token_location="data.login.token",
        endpoint_descriptor=GraphQLOperation(
            name="login",
            operation_type="mutation",
            url="https://gql.example.com/graphql",
        ),
    )


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        template = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return httpx.Response(template.status_code, headers=template.headers, content=template.content)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_json(self) -> Optional[dict]:
        return json.loads(self.requests[-1].content)
