"""
Models for survey submissions and the responses stored for them
"""
from pydantic import BaseModel, Field
from typing import Dict, Any, Optional
from datetime import datetime

class SubmissionCreate(BaseModel):
    """Request body for POST /api/submissions.

    ``answers`` is typed loosely on purpose: its shape is checked by the
    ingestion service so that every malformed payload maps to InvalidPayload.
    """
    surveyId: Optional[Any] = None
    answers: Optional[Any] = None

class StoredResponse(BaseModel):
    id: str
    data: Dict[str, Any]
    surveyId: Optional[Any] = None
    submittedAt: datetime

    model_config = {"frozen": True}

class SubmissionReceipt(BaseModel):
    message: str = "Survey response saved"
    saved: StoredResponse
