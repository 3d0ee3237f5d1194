from .requests import (
    ClassroomCreateRequest,
    ClassroomUpdateRequest,
    ClassroomTeacherInput,
    StreamCreateRequest,
    StreamUpdateRequest
)
from .responses import (
    ClassroomSummary,
    ClassroomResponse,
    ClassroomTeacherEntry,
    StreamSummary,
    StreamResponse,
    StreamTeacherEntry
)

__all__ = [
    'ClassroomCreateRequest',
    'ClassroomUpdateRequest',
    'ClassroomTeacherInput',
    'StreamCreateRequest',
    'StreamUpdateRequest',
    'ClassroomSummary',
    'ClassroomResponse',
    'ClassroomTeacherEntry',
    'StreamSummary',
    'StreamResponse',
    'StreamTeacherEntry'
]
