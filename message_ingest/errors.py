"""
Message Ingest Service - Errors

Failure taxonomy for message decoding and object storage.
"""

from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exc
from requests import exceptions as req_exc


class IngestError(Exception):
    """Base class for every failure the ingest path can raise."""


class MalformedMessageError(IngestError):
    """Message id missing or invalid, or payload undecodable. Never fixed by a retry."""


class StorageError(IngestError):
    """Object store call failed."""

    retryable = True


class TransientStorageError(StorageError):
    """Network error, timeout or throttling. Redelivery may succeed."""


class PermanentStorageError(StorageError):
    """Access denied or bucket missing. Needs an operator."""

    retryable = False


class ObjectNotFoundError(StorageError):
    """No object under the requested key."""

    retryable = False


_PERMANENT = (
    gexc.Unauthorized,
    gexc.Forbidden,
    gexc.NotFound,
    gexc.BadRequest,
    auth_exc.DefaultCredentialsError,
    auth_exc.RefreshError,
)

_TRANSIENT = (
    gexc.TooManyRequests,
    gexc.ServerError,
    gexc.RetryError,
    req_exc.ConnectionError,
    req_exc.Timeout,
    ConnectionError,
    TimeoutError,
)


def classify_storage_error(exc: Exception) -> StorageError:
    """Map a client library exception onto the storage taxonomy."""
    if isinstance(exc, StorageError):
        return exc
    if isinstance(exc, _PERMANENT):
        return PermanentStorageError(str(exc))
    if isinstance(exc, _TRANSIENT):
        return TransientStorageError(str(exc))
    # Unknown failures are retried by redelivery.
    return TransientStorageError(f"{type(exc).__name__}: {exc}")
