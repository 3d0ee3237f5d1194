# school_admin/schemas/teacher/__init__.py
from .base import TeacherSummary
from .requests import (
    QualifiedSubjectRequest,
    TeacherCreateRequest,
    TeacherUpdateRequest
)
from .responses import (
    QualifiedSubjectResponse,
    TeacherResponse,
    TeacherLoad,
    TeacherDetailResponse,
    TeacherCombinationResponse,
    WorkloadResponse,
    WorkloadSummary,
    WorkloadReportResponse
)

__all__ = [
    'TeacherSummary',
    'QualifiedSubjectRequest',
    'TeacherCreateRequest',
    'TeacherUpdateRequest',
    'QualifiedSubjectResponse',
    'TeacherResponse',
    'TeacherLoad',
    'TeacherDetailResponse',
    'TeacherCombinationResponse',
    'WorkloadResponse',
    'WorkloadSummary',
    'WorkloadReportResponse'
]
