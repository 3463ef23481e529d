"""Notebook conversion, ULIDs, log helpers, VS Code asset tools, example learning and in-memory retrieval."""

__version__ = "0.1.0"

__all__ = [
    "models",
    "converters",
    "ulid",
    "matchers",
    "llms",
    "oai",
    "logs",
    "vscode",
    "webassets",
    "learner",
    "in_memory",
]