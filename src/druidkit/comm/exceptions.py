from typing import Optional


class QueryRequestError(RuntimeError):
    """
    The broker answered a request with a non-200 status, or with a body that
    is not JSON.

    Attributes:
        status_code: The HTTP status returned by the broker.
        body: The raw response body.
    """

    def __init__(self, status_code: int, body: str, reason: Optional[str] = None):
        super().__init__(reason or f"Request failed: {status_code}: {body}")
        self.status_code = status_code
        self.body = body
