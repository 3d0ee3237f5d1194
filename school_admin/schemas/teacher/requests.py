from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional

from school_admin.core.config import settings
from school_admin.schemas.enums import CurriculumType, EducationalLevel, Pathway


class TeacherProfileFields(BaseModel):
    employee_number: Optional[str] = Field(default=None, max_length=50)
    tsc_number: Optional[str] = Field(default=None, max_length=50)
    qualification: Optional[str] = Field(default=None, max_length=255)
    curriculum_specialization: Optional[CurriculumType] = None
    combination_id: Optional[int] = Field(default=None, ge=1)
    subject_ids: Optional[List[int]] = None
    teaching_levels: Optional[List[EducationalLevel]] = None
    teaching_pathways: Optional[List[Pathway]] = None
    max_classes: Optional[int] = Field(default=None, ge=1)
    max_subjects: Optional[int] = Field(default=None, ge=1, le=20)
    max_weekly_lessons: Optional[int] = Field(default=None, ge=1, le=60)
    min_weekly_lessons: Optional[int] = Field(default=None, ge=1, le=60)

    @field_validator('max_classes')
    @classmethod
    def validate_max_classes(cls, v):
        if v is not None and v > settings.MAX_CLASSES_LIMIT:
            raise ValueError(f"max_classes may not be greater than {settings.MAX_CLASSES_LIMIT}")
        return v

    @field_validator('subject_ids')
    @classmethod
    def dedupe_subject_ids(cls, v):
        if v is None:
            return v
        return list(dict.fromkeys(v))

    @model_validator(mode='after')
    def validate_lesson_range(self):
        if (
            self.max_weekly_lessons is not None
            and self.min_weekly_lessons is not None
            and self.min_weekly_lessons > self.max_weekly_lessons
        ):
            raise ValueError("min_weekly_lessons cannot exceed max_weekly_lessons")
        return self


class TeacherCreateRequest(TeacherProfileFields):
    """Promote an existing user of the school to teacher"""
    user_id: int = Field(..., ge=1)

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_id": 12,
                "tsc_number": "654321",
                "curriculum_specialization": "CBC",
                "combination_id": 3,
                "max_classes": 6
            }
        }
    }


class TeacherUpdateRequest(TeacherProfileFields):
    """Partial update; omitted fields are left unchanged"""
    pass


class QualifiedSubjectRequest(BaseModel):
    """Add a subject to a teacher's qualified list, or update its details"""
    subject_id: int = Field(..., ge=1)
    is_primary_subject: bool = False
    years_experience: Optional[int] = Field(default=None, ge=0, le=50)
    can_teach_levels: Optional[List[EducationalLevel]] = None
