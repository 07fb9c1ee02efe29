from __future__ import annotations

from typing import Any, Dict, Optional


class BaseAPIException(Exception):
    """Base exception for errors that end up as an HTTP response.

    ``message`` is what the client sees. ``details`` is for server-side logs only.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class BadRequestError(BaseAPIException):
    """Body could not be parsed into a submission."""
    def __init__(self, message: str = "Richiesta non valida", **kwargs):
        super().__init__(message, status_code=400, **kwargs)


class PayloadTooLargeError(BaseAPIException):
    """Body exceeds the configured ceiling."""
    def __init__(self, message: str = "Richiesta troppo grande", **kwargs):
        super().__init__(message, status_code=413, **kwargs)


class StoreError(BaseAPIException):
    """Write or read against the lead store failed."""
    def __init__(self, message: str = "Errore salvataggio lead", **kwargs):
        super().__init__(message, status_code=500, **kwargs)


class NotifierError(BaseAPIException):
    """Notification email could not be sent."""
    def __init__(self, message: str = "Errore invio notifica", **kwargs):
        super().__init__(message, status_code=502, **kwargs)


class UnexpectedError(BaseAPIException):
    """Anything else that failed while handling a lead."""
    def __init__(self, message: str = "Errore server", **kwargs):
        super().__init__(message, status_code=500, **kwargs)
