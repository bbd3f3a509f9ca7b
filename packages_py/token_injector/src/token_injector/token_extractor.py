"""
Extract a token from a JSON response using a dot-notation path.

Example paths: "token", "data.login.token", "response.auth.accessToken".
Only objects can be traversed; array indexing is not supported.
"""
import json
from typing import Any, Union

from .errors import ExtractionError, ExtractionFailure


def extract_token(document: Union[bytes, str], path: str) -> str:
    """Return the non-empty string found at ``path`` in the JSON ``document``."""
    if not path:
        raise ExtractionError(ExtractionFailure.EMPTY_PATH, "token location is empty")

    try:
        data: Any = json.loads(document)
    except (TypeError, ValueError, RecursionError) as e:
        raise ExtractionError(
            ExtractionFailure.INVALID_JSON,
            f"failed to parse response as JSON: {e}",
            path=path,
        ) from e

    current = data
    for index, segment in enumerate(path.split(".")):
        if not isinstance(current, dict):
            raise ExtractionError(
                ExtractionFailure.NOT_AN_OBJECT,
                f"path segment '{segment}' (index {index}) is not inside an object",
                path=path,
                segment=segment,
            )
        if segment not in current:
            raise ExtractionError(
                ExtractionFailure.MISSING_SEGMENT,
                f"path segment '{segment}' not found in response",
                path=path,
                segment=segment,
            )
        current = current[segment]

    if not isinstance(current, str):
        raise ExtractionError(
            ExtractionFailure.NOT_A_STRING,
            f"token value at path '{path}' is {type(current).__name__}, not a string",
            path=path,
        )
    if not current:
        raise ExtractionError(
            ExtractionFailure.EMPTY,
            f"token value at path '{path}' is empty",
            path=path,
        )
    return current
