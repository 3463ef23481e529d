"""Helpers for working with the OpenAI API: errors, model mapping and API keys."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Version of the Azure OpenAI API to use.
AZURE_OPENAI_VERSION = "2024-02-01"

# Number of dimensions in the small embeddings.
SMALL_EMBEDDINGS_DIMS = 1536

# Error code returned by OpenAI when the context length was exceeded.
CONTEXT_LENGTH_EXCEEDED_CODE = "context_length_exceeded"

# Deployment name returned when a model has no Azure deployment.
MISSING_DEPLOYMENT = "missing-deployment"

_log = logging.getLogger(__name__)


class APIError(Exception):
    """An error reported by the OpenAI API."""

    def __init__(
        self,
        message: str = "",
        *,
        code: Any = None,
        http_status_code: int = 0,
        type: str = "",
        param: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status_code = http_status_code
        self.type = type
        self.param = param

    def __str__(self) -> str:
        if self.http_status_code:
            return f"error, status code: {self.http_status_code}, message: {self.message}"
        return self.message


def error_is(err: BaseException | None, oai_code: str) -> bool:
    """Return True if err is an APIError whose string code equals oai_code."""
    if not isinstance(err, APIError):
        return False
    if not isinstance(err.code, str):
        return False
    return err.code == oai_code


def _error_chain(err: BaseException | None):
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__ if err.__cause__ is not None else err.__context__


def http_status_code(err: BaseException | None) -> int:
    """Return the HTTP status code of the first APIError in err's chain, or -1."""
    for current in _error_chain(err):
        if isinstance(current, APIError):
            return current.http_status_code
    return -1


@dataclass
class AzureModelMapper:
    """Maps OpenAI models to Azure deployments."""

    model_to_deployment: dict[str, str] = field(default_factory=dict)

    def map(self, model: str) -> str:
        """Return the deployment for model, or a placeholder name if there is none."""
        try:
            return self.model_to_deployment[model]
        except KeyError:
            _log.error("No AzureAI deployment found for model %s", model)
            return MISSING_DEPLOYMENT


def read_api_key(api_key_file: str) -> str:
    """Read an API key from a file, stripping surrounding whitespace."""
    if not api_key_file:
        raise ValueError("APIKeyFile is required")
    try:
        raw = Path(api_key_file).read_text(encoding="utf-8")
    except OSError as exc:
        raise OSError(f"could not read APIKeyFile: {api_key_file}") from exc
    return raw.strip()