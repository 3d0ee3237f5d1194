from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import date

from school_admin.schemas.enums import CurriculumType


def _check_dates(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError("end_date must be after start_date")


class AcademicYearCreateRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    term: str = Field(..., min_length=1, max_length=50)
    start_date: date
    end_date: date
    curriculum_type: Optional[CurriculumType] = None
    is_active: bool = False

    @model_validator(mode='after')
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class TermSpec(BaseModel):
    term: str = Field(..., min_length=1, max_length=50)
    start_date: date
    end_date: date
    is_active: bool = False

    @model_validator(mode='after')
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class BulkTermsCreateRequest(BaseModel):
    """Create several terms of one year in a single all-or-nothing request"""
    year: int = Field(..., ge=2000, le=2100)
    terms: List[TermSpec] = Field(..., min_length=1, max_length=6)
    curriculum_type: Optional[CurriculumType] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "year": 2025,
                "curriculum_type": "CBC",
                "terms": [
                    {"term": "Term 1", "start_date": "2025-01-06", "end_date": "2025-04-04", "is_active": True},
                    {"term": "Term 2", "start_date": "2025-04-28", "end_date": "2025-08-01"}
                ]
            }
        }
    }

    @model_validator(mode='after')
    def validate_single_active(self):
        if sum(1 for t in self.terms if t.is_active) > 1:
            raise ValueError("Only one term can be active")
        return self


class AcademicYearUpdateRequest(BaseModel):
    term: Optional[str] = Field(default=None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None

    @model_validator(mode='after')
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self
