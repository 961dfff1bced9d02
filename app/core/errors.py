#app/core/errors.py
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from app.core.config import get_settings


class RegistryError(Exception):
    """
    Base class for every failure the registry core reports.

    status_code is the HTTP equivalent used by the API layer.
    internal errors hide their message from callers outside dev mode.
    """

    status_code: int = 500
    internal: bool = False

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationFailed(RegistryError):
    status_code = 400


class MissingBlockchainData(RegistryError):
    status_code = 400

    def __init__(self, message: str = "Missing blockchain transaction details", **kw):
        super().__init__(message, **kw)


class Unauthenticated(RegistryError):
    status_code = 401


class NoSession(RegistryError):
    status_code = 401

    def __init__(self, message: str = "Invalid device session", **kw):
        super().__init__(message, **kw)


class Forbidden(RegistryError):
    status_code = 403


class NotFound(RegistryError):
    status_code = 404


class AlreadyFinalized(RegistryError):
    status_code = 409


class DuplicateRequest(RegistryError):
    status_code = 409


class UpstreamSyncFailure(RegistryError):
    status_code = 502
    internal = True


class StoreTransactionFailure(RegistryError):
    status_code = 500
    internal = True


def to_http(exc: RegistryError) -> HTTPException:
    """
    Client errors keep their message; internal ones only show detail in dev.
    """
    if not exc.internal:
        return HTTPException(status_code=exc.status_code, detail=exc.message)

    body = {"error": exc.message}
    if get_settings().is_dev:
        body["details"] = exc.detail or str(exc.__cause__ or exc)
    return HTTPException(status_code=exc.status_code, detail=body)
