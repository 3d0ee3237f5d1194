from pydantic import BaseModel, ConfigDict
from typing import Optional


class TeacherSummary(BaseModel):
    """Compact teacher shape embedded in classroom and stream payloads"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    curriculum_specialization: str
    max_classes: int
