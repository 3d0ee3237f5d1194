from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from school_admin.schemas.teacher.base import TeacherSummary
from school_admin.schemas.classroom.responses import ClassroomSummary, StreamSummary


class ClassroomLinkResponse(BaseModel):
    """A teacher's link to a classroom, with both ends loaded"""
    model_config = ConfigDict(from_attributes=True)

    classroom_id: int
    teacher_id: int
    is_class_teacher: bool
    teacher: TeacherSummary
    classroom: ClassroomSummary


class AssignmentLinkResponse(BaseModel):
    message: str
    link: ClassroomLinkResponse


class BulkClassroomAssignmentResponse(BaseModel):
    message: str
    teacher_id: int
    assigned_to: List[ClassroomSummary]
    already_assigned: List[ClassroomSummary]
    total_requested: int
    newly_assigned: int
    skipped: int
    max_classes: int
    current_class_count: int


class BulkTeacherAssignmentResponse(BaseModel):
    message: str
    assigned: List[TeacherSummary]
    already_assigned: List[TeacherSummary]
    total_requested: int
    newly_assigned: int
    skipped: int


class ClassTeacherEntry(BaseModel):
    teacher: TeacherSummary
    classroom: ClassroomSummary
    stream: Optional[StreamSummary] = None


class AvailableClassroomsResponse(BaseModel):
    teacher_id: int
    current_class_count: int
    max_classes: int
    available_slots: int
    classrooms: List[ClassroomSummary]


class TeacherClassEntry(BaseModel):
    """One class a teacher is attached to; ``stream`` is set in streamed schools"""
    classroom: ClassroomSummary
    stream: Optional[StreamSummary] = None
    is_class_teacher: bool


class TeacherClassesResponse(BaseModel):
    teacher_id: int
    mode: str
    classes: List[TeacherClassEntry]
