from pydantic import BaseModel, ConfigDict
from typing import List
from datetime import date


class AcademicYearResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    school_id: int
    year: int
    term: str
    start_date: date
    end_date: date
    curriculum_type: str
    is_active: bool


class BulkTermsResponse(BaseModel):
    message: str
    academic_years: List[AcademicYearResponse]
