from .requests import (
    AssignTeacherRequest,
    ClassTeacherRequest,
    BulkTeachersRequest,
    AssignToMultipleClassroomsRequest
)
from .responses import (
    ClassroomLinkResponse,
    AssignmentLinkResponse,
    BulkClassroomAssignmentResponse,
    BulkTeacherAssignmentResponse,
    ClassTeacherEntry,
    AvailableClassroomsResponse,
    TeacherClassEntry,
    TeacherClassesResponse
)

__all__ = [
    'AssignTeacherRequest',
    'ClassTeacherRequest',
    'BulkTeachersRequest',
    'AssignToMultipleClassroomsRequest',
    'ClassroomLinkResponse',
    'AssignmentLinkResponse',
    'BulkClassroomAssignmentResponse',
    'BulkTeacherAssignmentResponse',
    'ClassTeacherEntry',
    'AvailableClassroomsResponse',
    'TeacherClassEntry',
    'TeacherClassesResponse'
]
