"""Domain exceptions shared by providers, services and routes."""


class CatalogError(Exception):
    """Base class for all Catalogarr failures.

    ``status_code`` is the HTTP status the API layer answers with when the
    error reaches a route.
    """

    status_code = 500

    def __init__(self, message: str, original_exception: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class ValidationError(CatalogError):
    """Bad or missing client input."""

    status_code = 400


class NotFoundError(CatalogError):
    """Well-formed upstream response signalling that the content is absent."""

    status_code = 404


class AuthUnavailableError(CatalogError):
    """The session cookie could not be obtained.

    Providers treat this as "proceed without credential".
    """

    status_code = 503


class FetchError(CatalogError):
    """Upstream transport or shape failure."""

    def __init__(
        self, message: str, provider: str = "", original_exception: Exception = None
    ):
        super().__init__(message, original_exception)
        self.provider = provider


class HttpStatusError(FetchError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, provider: str, status: int):
        super().__init__(f"{provider} responded with HTTP {status}", provider)
        self.status = status


class EmptyBodyError(FetchError):
    def __init__(self, provider: str):
        super().__init__(f"Empty response from {provider}", provider)


class MalformedJsonError(FetchError):
    def __init__(self, provider: str, original_exception: Exception = None):
        super().__init__(
            f"Invalid JSON response from {provider}", provider, original_exception
        )


class FetchTimeoutError(FetchError):
    def __init__(self, provider: str, original_exception: Exception = None):
        super().__init__(
            f"Timed out waiting for {provider}", provider, original_exception
        )


class StorageError(CatalogError):
    """Persisted cache could not be read or written."""
