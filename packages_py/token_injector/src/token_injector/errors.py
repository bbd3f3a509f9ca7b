"""
Error taxonomy for token_injector.

Every error raised while resolving a token derives from TokenInjectorError and
names the stage that failed. The orchestrator annotates errors with the
service id and auth type before they reach the caller.
"""
from enum import Enum
from typing import Any, Dict, Optional


class Stage(str, Enum):
    """Pipeline stage an error originated from."""

    BUILD = "build"
    TRANSPORT = "transport"
    EXTRACTION = "extraction"
    CACHE = "cache"
    CREDENTIALS = "credentials"
    DISPATCH = "dispatch"
    CONFIG = "config"


class TokenInjectorError(Exception):
    """Base error for token resolution failures."""

    code = "TOKEN_INJECTOR_ERROR"
    stage = Stage.DISPATCH

    def __init__(
        self,
        message: str,
        *,
        service_id: Optional[str] = None,
        auth_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.service_id = service_id
        self.auth_type = auth_type

    def annotate(
        self,
        service_id: Optional[str] = None,
        auth_type: Optional[Any] = None,
    ) -> "TokenInjectorError":
        """Attach resolution context without overwriting what is already set."""
        if self.service_id is None and service_id is not None:
            self.service_id = service_id
        if self.auth_type is None and auth_type is not None:
            self.auth_type = getattr(auth_type, "value", auth_type)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for log records."""
        return {
            "code": self.code,
            "stage": self.stage.value,
            "message": self.message,
            "service_id": self.service_id,
            "auth_type": self.auth_type,
        }

    def __str__(self) -> str:
        context = []
        if self.service_id is not None:
            context.append(f"service_id={self.service_id}")
        if self.auth_type is not None:
            context.append(f"auth_type={self.auth_type}")
        prefix = f"[{self.stage.value}] {self.message}"
        if context:
            return f"{prefix} ({', '.join(context)})"
        return prefix


# ---------------------------------------------------------------------------
# Nested object construction
# ---------------------------------------------------------------------------


class PathConflictError(TokenInjectorError):
    """A dotted path collides with a value already bound in the object."""

    code = "PATH_CONFLICT"
    stage = Stage.BUILD

    def __init__(self, key: str, segment: str, **kwargs: Any) -> None:
        super().__init__(
            f"path conflict for key '{key}': '{segment}' is already bound", **kwargs
        )
        self.key = key
        self.segment = segment


class EmptyKeyError(TokenInjectorError):
    """A credential key (or one of its segments) is empty."""

    code = "EMPTY_KEY"
    stage = Stage.BUILD

    def __init__(self, key: str, **kwargs: Any) -> None:
        super().__init__(f"credential key '{key}' has an empty path segment", **kwargs)
        self.key = key


# ---------------------------------------------------------------------------
# Token extraction
# ---------------------------------------------------------------------------


class ExtractionFailure(str, Enum):
    MISSING_SEGMENT = "missing_segment"
    NOT_AN_OBJECT = "not_an_object"
    NOT_A_STRING = "not_a_string"
    EMPTY = "empty"
    EMPTY_PATH = "empty_path"
    INVALID_JSON = "invalid_json"


class ExtractionError(TokenInjectorError):
    """The token could not be read from the auth response."""

    code = "EXTRACTION_FAILED"
    stage = Stage.EXTRACTION

    def __init__(
        self,
        reason: ExtractionFailure,
        message: str,
        *,
        path: str = "",
        segment: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason
        self.path = path
        self.segment = segment


# ---------------------------------------------------------------------------
# Request assembly
# ---------------------------------------------------------------------------


class BuildFailure(str, Enum):
    MISSING_REQUIRED_PARAMETER = "missing_required_parameter"
    UNSUPPORTED_LOCATION = "unsupported_location"
    SERIALIZATION_FAILURE = "serialization_failure"
    INVALID_ENDPOINT = "invalid_endpoint"
    MISSING_ENDPOINT_URL = "missing_endpoint_url"


class BuildError(TokenInjectorError):
    """The outbound auth request could not be assembled."""

    code = "BUILD_FAILED"
    stage = Stage.BUILD

    def __init__(
        self,
        reason: BuildFailure,
        message: str,
        *,
        parameter: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason
        self.parameter = parameter


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(TokenInjectorError):
    """The auth call failed on the wire or returned an unaccepted status."""

    code = "TRANSPORT_FAILED"
    stage = Stage.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.url = url


# ---------------------------------------------------------------------------
# Dispatch and credentials
# ---------------------------------------------------------------------------


class UnsupportedAuthTypeError(TokenInjectorError):
    """The declared auth type is not one this engine knows."""

    code = "UNSUPPORTED_AUTH_TYPE"
    stage = Stage.DISPATCH

    def __init__(self, value: Any, **kwargs: Any) -> None:
        super().__init__(f"unsupported auth type: {value!r}", **kwargs)
        self.value = value


class UnsupportedEndpointTypeError(TokenInjectorError):
    """The declared endpoint type is neither REST nor GRAPHQL."""

    code = "UNSUPPORTED_ENDPOINT_TYPE"
    stage = Stage.DISPATCH

    def __init__(self, value: Any, **kwargs: Any) -> None:
        super().__init__(f"unsupported endpoint type: {value!r}", **kwargs)
        self.value = value


class MissingCredentialFieldError(TokenInjectorError):
    """A static credential (username, password, api key) is absent or empty."""

    code = "MISSING_CREDENTIAL_FIELD"
    stage = Stage.CREDENTIALS

    def __init__(self, field: str, **kwargs: Any) -> None:
        super().__init__(f"credential field '{field}' is missing or empty", **kwargs)
        self.field = field


class ConfigError(TokenInjectorError):
    """Configuration could not be loaded or validated."""

    code = "CONFIG_INVALID"
    stage = Stage.CONFIG
