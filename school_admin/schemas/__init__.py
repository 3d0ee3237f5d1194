# school_admin/schemas/__init__.py

# Import enums
from .enums import (
    UserRole,
    CurriculumType,
    EducationalLevel,
    Pathway,
    AssignmentType,
    WorkloadStatus
)

# Import common schemas
from .common import ErrorResponse, MessageResponse

# Import auth schemas
from .auth import LoginRequest, LoginResponse, UserResponse

# Import school schemas
from .school import SchoolConfigResponse

# Import teacher schemas
from .teacher import (
    TeacherSummary,
    TeacherCreateRequest,
    TeacherUpdateRequest,
    TeacherResponse,
    TeacherDetailResponse,
    TeacherCombinationResponse,
    WorkloadResponse,
    WorkloadReportResponse
)

# Import classroom and stream schemas
from .classroom import (
    ClassroomCreateRequest,
    ClassroomUpdateRequest,
    StreamCreateRequest,
    StreamUpdateRequest,
    ClassroomSummary,
    ClassroomResponse,
    StreamResponse
)

# Import assignment schemas
from .assignment import (
    AssignTeacherRequest,
    ClassTeacherRequest,
    BulkTeachersRequest,
    AssignToMultipleClassroomsRequest,
    AssignmentLinkResponse,
    BulkClassroomAssignmentResponse,
    BulkTeacherAssignmentResponse,
    ClassTeacherEntry,
    AvailableClassroomsResponse
)

# Import subject assignment schemas
from .subject_assignment import (
    SubjectAssignmentCreateRequest,
    SubjectAssignmentBatchRequest,
    SubjectAssignmentUpdateRequest,
    SubjectAssignmentResponse,
    SubjectAssignmentCreatedResponse,
    SubjectAssignmentBatchResponse,
    SubjectAssignmentPreviewResponse
)

# Import academic year schemas
from .academic_year import (
    AcademicYearCreateRequest,
    AcademicYearUpdateRequest,
    BulkTermsCreateRequest,
    AcademicYearResponse,
    BulkTermsResponse
)
