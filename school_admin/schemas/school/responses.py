from pydantic import BaseModel
from typing import List, Optional


class SchoolConfigResponse(BaseModel):
    """What the assignment endpoints need to know about a school"""
    school_id: int
    name: str
    has_streams: bool
    assignment_mode: str
    primary_curriculum: Optional[str] = None
    secondary_curriculum: Optional[str] = None
    curricula: List[str]
    educational_levels: List[str]
    senior_secondary_pathways: List[str]
    grade_levels: List[str]
