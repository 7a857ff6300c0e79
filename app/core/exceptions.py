# app/core/exceptions.py


class QuoteStateError(ValueError):
    """A lifecycle transition that the quote's current status does not allow."""

    def __init__(self, message: str, status: str = ""):
        super().__init__(message)
        self.status = status


class UpstreamError(RuntimeError):
    """A hosted dependency (email provider, storage, auth admin API) failed."""

    def __init__(self, service: str, message: str, status_code: int = 0):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code
