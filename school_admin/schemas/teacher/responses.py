from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from school_admin.schemas.enums import WorkloadStatus


class QualifiedSubjectResponse(BaseModel):
    subject_id: int
    name: str
    code: Optional[str] = None
    curriculum_type: str
    level: Optional[str] = None
    pathway: Optional[str] = None
    is_primary_subject: bool
    years_experience: Optional[int] = None
    can_teach_levels: Optional[List[str]] = None


class TeacherResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    school_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    employee_number: Optional[str] = None
    tsc_number: Optional[str] = None
    qualification: Optional[str] = None
    curriculum_specialization: str
    combination_id: Optional[int] = None
    teaching_levels: Optional[List[str]] = None
    teaching_pathways: Optional[List[str]] = None
    max_classes: int
    max_subjects: int
    max_weekly_lessons: int
    min_weekly_lessons: int


class TeacherLoad(BaseModel):
    """Live class load, counted from the link tables"""
    mode: str
    current_class_count: int
    max_classes: int
    available_slots: int
    class_teacher_of: Optional[str] = None


class TeacherDetailResponse(TeacherResponse):
    load: TeacherLoad
    qualified_subjects: List[QualifiedSubjectResponse] = []


class TeacherCombinationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    degree_title: Optional[str] = None
    primary_subjects: List[str]
    derived_subjects: List[str]
    eligible_levels: List[str]
    eligible_pathways: List[str]
    curriculum_types: List[str]


class WorkloadResponse(BaseModel):
    teacher_id: int
    teacher_name: Optional[str] = None
    academic_year_id: Optional[int] = None
    total_lessons: int
    subject_count: int
    class_count: int
    max_lessons: int
    min_lessons: int
    status: WorkloadStatus
    available_capacity: int
    percentage_used: float


class WorkloadSummary(BaseModel):
    total_teachers: int
    overloaded: int
    underloaded: int
    optimal: int
    average_lessons: float


class WorkloadReportResponse(BaseModel):
    teachers: List[WorkloadResponse]
    summary: WorkloadSummary
