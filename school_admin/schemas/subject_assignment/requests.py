from pydantic import BaseModel, Field, model_validator
from typing import List, Optional

from school_admin.schemas.enums import AssignmentType


class SubjectAssignmentCreateRequest(BaseModel):
    """
    Streamed schools send ``stream_id``; plain schools send ``classroom_id``.
    ``weekly_periods`` falls back to the configured default when omitted.
    """
    teacher_id: int = Field(..., ge=1)
    subject_id: int = Field(..., ge=1)
    academic_year_id: int = Field(..., ge=1)
    stream_id: Optional[int] = Field(default=None, ge=1)
    classroom_id: Optional[int] = Field(default=None, ge=1)
    weekly_periods: Optional[int] = Field(default=None, ge=1, le=40)
    assignment_type: AssignmentType = AssignmentType.MAIN_TEACHER
    notes: Optional[str] = Field(default=None, max_length=1000)

    model_config = {
        "json_schema_extra": {
            "example": {
                "teacher_id": 4,
                "subject_id": 17,
                "academic_year_id": 2,
                "stream_id": 8,
                "weekly_periods": 5,
                "assignment_type": "main_teacher"
            }
        }
    }

    @model_validator(mode='after')
    def validate_target(self):
        if self.stream_id is None and self.classroom_id is None:
            raise ValueError("Either stream_id or classroom_id is required")
        if self.stream_id is not None and self.classroom_id is not None:
            raise ValueError("Provide stream_id or classroom_id, not both")
        return self


class SubjectAssignmentBatchRequest(BaseModel):
    assignments: List[SubjectAssignmentCreateRequest] = Field(..., min_length=1, max_length=200)


class SubjectAssignmentUpdateRequest(BaseModel):
    weekly_periods: Optional[int] = Field(default=None, ge=1, le=40)
    assignment_type: Optional[AssignmentType] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
