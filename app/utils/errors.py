"""
Error taxonomy for submission ingestion
"""
from fastapi import status


class IngestionError(Exception):
    """Base class for errors surfaced by the ingestion endpoint"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    @property
    def error(self) -> str:
        return type(self).__name__


class InvalidPayload(IngestionError):
    """The submission is missing, not a JSON object, or empty. Not retryable."""

    status_code = status.HTTP_400_BAD_REQUEST


class StorageUnavailable(IngestionError):
    """The response store could not be reached or did not commit the write.

    Callers may retry with backoff; no record was created.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
