"""Error taxonomy for paste operations.

Every exception raised across the core boundary derives from PasteError so
the presentation layer can map it to a response without knowing about
storage internals:

- PasteValidationError: caller-correctable upload problems (4xx)
- PasteNotFoundError: unknown, expired or malformed identifier (404)
- StoreUnavailableError: origin or edge backend failure
- MetadataCorruptError: stored metadata cannot be trusted (fatal, 5xx)

No error kind is retried inside the core. Uploads are idempotent by
content, so a client retry is always safe.
"""


class PasteError(Exception):
    """Base class for all paste errors."""


class PasteValidationError(PasteError):
    """Upload body rejected at ingress."""


class EmptyPasteError(PasteValidationError):
    """Raised when an upload carries no body at all."""

    def __init__(self) -> None:
        super().__init__("paste body is empty")


class PasteTooSmallError(PasteValidationError):
    """Raised when an upload is below the configured minimum size."""

    def __init__(self, size: int, minimum: int) -> None:
        self.size = size
        self.minimum = minimum
        super().__init__(f"paste too small ({size} bytes, minimum size {minimum} bytes)")


class PasteTooLargeError(PasteValidationError):
    """Raised when an upload exceeds the configured maximum size.

    ``size`` may be a lower bound when the body was rejected while streaming.
    """

    def __init__(self, size: int, maximum: int) -> None:
        self.size = size
        self.maximum = maximum
        super().__init__(f"paste too large (maximum size {maximum} bytes)")


class PasteNotFoundError(PasteError):
    """Raised when an identifier does not resolve to a live paste.

    Unknown, expired and malformed identifiers are deliberately
    indistinguishable.
    """

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"/{identifier} not found")


class StoreUnavailableError(PasteError):
    """Raised when the origin store or edge cache backend fails.

    The backend exception is chained as ``__cause__``.
    """

    def __init__(self, backend: str, operation: str, key: str) -> None:
        self.backend = backend
        self.operation = operation
        self.key = key
        super().__init__(f"{backend} {operation} failed for key {key!r}")


class MetadataCorruptError(PasteError):
    """Raised when metadata stored alongside content fails to parse.

    Metadata is written atomically with content, so this indicates a bug
    upstream. It is surfaced for the single request, never masked.
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"metadata for key {key!r} is corrupt: {reason}")


class IntegrityError(MetadataCorruptError):
    """Raised when stored content doesn't match its recorded fingerprint."""

    def __init__(self, key: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(key, f"content hash {actual} does not match recorded hash {expected}")
