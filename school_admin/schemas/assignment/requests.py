from pydantic import BaseModel, Field, field_validator
from typing import List


class AssignTeacherRequest(BaseModel):
    teacher_id: int = Field(..., ge=1)
    is_class_teacher: bool = False


class ClassTeacherRequest(BaseModel):
    teacher_id: int = Field(..., ge=1)


def _unique_ids(values: List[int]) -> List[int]:
    if any(v < 1 for v in values):
        raise ValueError("Ids must be positive integers")
    return list(dict.fromkeys(values))


class BulkTeachersRequest(BaseModel):
    """Attach several teachers to one classroom or stream"""
    teacher_ids: List[int] = Field(..., min_length=1)

    @field_validator('teacher_ids')
    @classmethod
    def dedupe(cls, v):
        return _unique_ids(v)


class AssignToMultipleClassroomsRequest(BaseModel):
    """Attach one teacher to several classrooms"""
    teacher_id: int = Field(..., ge=1)
    classroom_ids: List[int] = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"teacher_id": 4, "classroom_ids": [1, 2, 5]}
        }
    }

    @field_validator('classroom_ids')
    @classmethod
    def dedupe(cls, v):
        return _unique_ids(v)
