"""
Submission ingestion - validates survey payloads and hands them to the store

A payload is accepted when it is a non-empty JSON object. Its fields are
opaque here: the form schema that produced them lives in the frontend.
No retries are attempted; StorageUnavailable is passed on to the caller.
"""
import logging
import math
from typing import Any, Dict, Optional

from app.database.response_store import ResponseStore
from app.models.submission import SubmissionReceipt
from app.utils.errors import InvalidPayload, StorageUnavailable

logger = logging.getLogger(__name__)


def find_non_finite(value: Any, path: str = "answers") -> Optional[str]:
    """Path of the first NaN or Infinity inside value, which JSON cannot echo back"""
    if isinstance(value, float) and not math.isfinite(value):
        return path
    if isinstance(value, dict):
        for key, item in value.items():
            found = find_non_finite(item, f"{path}.{key}")
            if found:
                return found
    elif isinstance(value, list):
        for index, item in enumerate(value):
            found = find_non_finite(item, f"{path}[{index}]")
            if found:
                return found
    return None


def validate_answers(answers: Any) -> Dict[str, Any]:
    """Return the answers unchanged, or raise InvalidPayload"""
    if answers is None:
        raise InvalidPayload("answers is required")
    if not isinstance(answers, dict):
        raise InvalidPayload(f"answers must be a JSON object, got {type(answers).__name__}")
    if not answers:
        raise InvalidPayload("answers must not be empty")
    non_finite = find_non_finite(answers)
    if non_finite:
        raise InvalidPayload(f"{non_finite} must be a finite number")
    return answers


class IngestionService:
    """Single entry point for storing one completed survey"""

    def __init__(self, store: ResponseStore):
        self.store = store

    async def submit(self, answers: Any, survey_id: Any = None) -> SubmissionReceipt:
        try:
            answers = validate_answers(answers)
            if find_non_finite(survey_id, "surveyId"):
                raise InvalidPayload("surveyId must not contain NaN or Infinity")
        except InvalidPayload as exc:
            logger.warning("⚠️ Rejected submission: %s", exc.detail)
            raise

        try:
            saved = await self.store.save(answers, survey_id=survey_id)
        except InvalidPayload as exc:
            logger.warning("⚠️ Store refused submission (survey=%s): %s", survey_id, exc.detail)
            raise
        except StorageUnavailable as exc:
            logger.error("❌ Could not store submission (survey=%s): %s", survey_id, exc.detail)
            raise

        logger.info("✅ Stored survey response %s (survey=%s)", saved.id, survey_id)
        return SubmissionReceipt(message="Survey response saved", saved=saved)
