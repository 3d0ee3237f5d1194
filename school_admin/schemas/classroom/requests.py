from pydantic import BaseModel, Field, model_validator
from typing import List, Optional


class StreamCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
    class_teacher_id: Optional[int] = Field(default=None, ge=1)


class StreamUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)


class ClassroomTeacherInput(BaseModel):
    teacher_id: int = Field(..., ge=1)
    is_class_teacher: bool = False


class ClassroomCreateRequest(BaseModel):
    """
    Create a classroom, optionally with its streams (streamed schools) or
    its teachers (plain schools) in the same request.
    """
    name: str = Field(..., min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
    streams: List[StreamCreateRequest] = []
    teachers: List[ClassroomTeacherInput] = []

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Grade 7",
                "capacity": 45,
                "teachers": [
                    {"teacher_id": 4, "is_class_teacher": True},
                    {"teacher_id": 9, "is_class_teacher": False}
                ]
            }
        }
    }

    @model_validator(mode='after')
    def validate_payload(self):
        class_teachers = [t for t in self.teachers if t.is_class_teacher]
        if len(class_teachers) > 1:
            raise ValueError("Only one teacher can be the class teacher of a classroom")

        teacher_ids = [t.teacher_id for t in self.teachers]
        if len(teacher_ids) != len(set(teacher_ids)):
            raise ValueError("A teacher can only be listed once")

        stream_names = [s.name.strip().lower() for s in self.streams]
        if len(stream_names) != len(set(stream_names)):
            raise ValueError("Stream names must be unique within a classroom")

        stream_teachers = [s.class_teacher_id for s in self.streams if s.class_teacher_id]
        if len(stream_teachers) != len(set(stream_teachers)):
            raise ValueError("A teacher can be class teacher of only one stream")
        return self


class ClassroomUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
