from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional


class SubjectAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    teacher_id: int
    subject_id: int
    academic_year_id: int
    stream_id: Optional[int] = None
    classroom_id: Optional[int] = None
    weekly_periods: int
    assignment_type: str
    notes: Optional[str] = None


class SubjectAssignmentCreatedResponse(BaseModel):
    message: str
    assignment: SubjectAssignmentResponse
    warnings: List[str] = []


class SubjectAssignmentBatchResponse(BaseModel):
    message: str
    assignments: List[SubjectAssignmentResponse]
    warnings: Dict[str, List[str]] = {}


class SubjectAssignmentPreviewResponse(BaseModel):
    valid: bool
    errors: Dict[str, List[str]] = {}
    warnings: List[str] = []
