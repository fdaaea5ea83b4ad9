"""Exception taxonomy shared by the resolver, renderer, server, and builder."""

from __future__ import annotations


class SlidePagesError(Exception):
    """Base class for every error raised by slide_pages."""


class ConfigurationError(SlidePagesError, ValueError):
    """Raised when CLI targets or project paths cannot be resolved."""


class DocumentNotFoundError(SlidePagesError, LookupError):
    """Raised when a requested presentation document does not exist."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Document not found: {url}")
        self.url = url


class CollectionNotFoundError(SlidePagesError, LookupError):
    """Raised when a requested collection URL is not a directory."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Collection not found: {url}")
        self.url = url


class PreprocessorLoadError(SlidePagesError):
    """Raised when a declared content preprocessor cannot be resolved."""


class VendorError(SlidePagesError, RuntimeError):
    """Raised when a front-end module cannot be downloaded or unpacked."""


__all__ = [
    "CollectionNotFoundError",
    "ConfigurationError",
    "DocumentNotFoundError",
    "PreprocessorLoadError",
    "SlidePagesError",
    "VendorError",
]
