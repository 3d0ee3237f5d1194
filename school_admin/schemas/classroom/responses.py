from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from school_admin.schemas.teacher.base import TeacherSummary


class ClassroomSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class StreamSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    class_id: int


class StreamTeacherEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    teacher_id: int
    teacher: TeacherSummary


class StreamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    class_id: int
    school_id: int
    capacity: Optional[int] = None
    class_teacher_id: Optional[int] = None
    class_teacher: Optional[TeacherSummary] = None
    teacher_links: List[StreamTeacherEntry] = []


class ClassroomTeacherEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    teacher_id: int
    is_class_teacher: bool
    teacher: TeacherSummary


class ClassroomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    school_id: int
    capacity: Optional[int] = None
    teacher_count: int = 0
    class_teacher: Optional[TeacherSummary] = None
    teacher_links: List[ClassroomTeacherEntry] = []
    streams: List[StreamResponse] = []
