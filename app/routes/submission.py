"""
Submission routes - public survey response ingestion
"""
from fastapi import APIRouter, Depends, Request, status
from app.models.submission import SubmissionCreate, SubmissionReceipt
from app.services.ingestion import IngestionService

router = APIRouter(prefix="/submissions", tags=["Submissions"])

def get_ingestion_service(request: Request) -> IngestionService:
    """Bind the service to the store created at startup"""
    return IngestionService(request.app.state.store)

@router.post("", response_model=SubmissionReceipt, status_code=status.HTTP_201_CREATED)
async def submit_survey(
    submission: SubmissionCreate,
    service: IngestionService = Depends(get_ingestion_service)
):
    """Store one completed survey and return the saved record"""
    return await service.submit(submission.answers, survey_id=submission.surveyId)
