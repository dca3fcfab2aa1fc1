"""
CareMatch Error Codes

Hard failures of a recommendation run. Advisory failures are never raised;
see carematch.advisory.models.AdvisoryError.
"""

from enum import Enum


class RecommendationErrorCode(Enum):
    DEMANDE_NOT_FOUND = "DEMANDE_NOT_FOUND"
    DATA_FETCH_FAILED = "DATA_FETCH_FAILED"
    STORE_NOT_CONFIGURED = "STORE_NOT_CONFIGURED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"


class RecommendationException(Exception):
    """Raised when a run cannot produce a complete result."""

    def __init__(self, error_code: RecommendationErrorCode, message: str, http_code: int = 503):
        self.error_code = error_code
        self.message = message
        self.http_code = http_code
        super().__init__(f"{error_code.value}: {message}")

    def to_detail(self) -> dict:
        return {"error_code": self.error_code.value, "message": self.message}
