"""Exception taxonomy for kernel_services.

Transport errors (NetworkError, ResponseError) are raised by API clients.
Fetch errors (TransientFetchError, FatalFetchError) are the classified form
the managers emit or propagate. Remote operation errors are surfaced to the
caller of the mutating operation that failed.
"""

SERVICE_UNAVAILABLE = 503


class KernelServicesError(Exception):
    """Base class for all kernel_services errors."""

    pass


class NetworkError(KernelServicesError):
    """Raised when the kernel server cannot be reached."""

    pass


class ResponseError(KernelServicesError):
    """Raised when the kernel server answers with an error status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}" if message else f"HTTP {status_code}")


class TransientFetchError(KernelServicesError):
    """A fetch failure that is recovered locally by retrying on the next tick."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        super().__init__(f"Connection failure: {error}")


class FatalFetchError(KernelServicesError):
    """A fetch failure that is propagated to the poller and direct refresh callers."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        super().__init__(f"Fetch failed: {error}")


class RemoteCreationError(KernelServicesError):
    """Raised when the server fails to start a new kernel."""

    pass


class RemoteShutdownError(KernelServicesError):
    """Raised when one or more remote shutdown calls fail."""

    def __init__(self, message: str, errors: list[BaseException] | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__(message)


class DisposedStateError(KernelServicesError):
    """Raised when an operation is invoked on a disposed object."""

    pass


def is_transient(error: BaseException) -> bool:
    """Check whether a transport error should be recovered locally.

    A network error, or a 503 which is returned by a hub when a
    single-user server is shut down, is transient. Everything else is fatal.

    Args:
        error: Error raised by an API client

    Returns:
        True if the error is transient
    """
    if isinstance(error, NetworkError):
        return True
    return isinstance(error, ResponseError) and error.status_code == SERVICE_UNAVAILABLE
