from .requests import (
    SubjectAssignmentCreateRequest,
    SubjectAssignmentBatchRequest,
    SubjectAssignmentUpdateRequest
)
from .responses import (
    SubjectAssignmentResponse,
    SubjectAssignmentCreatedResponse,
    SubjectAssignmentBatchResponse,
    SubjectAssignmentPreviewResponse
)

__all__ = [
    'SubjectAssignmentCreateRequest',
    'SubjectAssignmentBatchRequest',
    'SubjectAssignmentUpdateRequest',
    'SubjectAssignmentResponse',
    'SubjectAssignmentCreatedResponse',
    'SubjectAssignmentBatchResponse',
    'SubjectAssignmentPreviewResponse'
]
