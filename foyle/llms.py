"""Common interfaces for working with LLMs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

import numpy as np

from foyle.models import Block

Vector = list[float]


class Vectorizer(ABC):
    """Computes embedding representations of text."""

    @abstractmethod
    def embed(self, blocks: Sequence[Block]) -> Vector:
        """Compute the embedding of the blocks."""

    @abstractmethod
    def length(self) -> int:
        """Return the length of the embeddings."""


class Completer(ABC):
    """Generates completions."""

    @abstractmethod
    def complete(self, system_prompt: str, message: str) -> list[Block]:
        """Return the blocks the model generates for the prompt and message."""


class ContextLengthExceededError(Exception):
    """Raised when a request exceeds the model's context length."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.__cause__ = cause

    def __str__(self) -> str:
        return str(self.cause)


def vector_to_array(v: Sequence[float]) -> np.ndarray:
    """Convert a vector to a float64 numpy array."""
    return np.asarray(v, dtype=np.float64)