"""
Decision tree ingestion.

Loads tree documents from local files or remote URLs.
"""
from .http_client import CircuitBreaker, CircuitOpenError, HttpClient, RetryConfig
from .tree_loader import DEFAULT_TREE_PATH, LoaderHealth, TreeLoadError, TreeLoader, load_document_file

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "HttpClient",
    "RetryConfig",
    "DEFAULT_TREE_PATH",
    "LoaderHealth",
    "TreeLoadError",
    "TreeLoader",
    "load_document_file",
]
