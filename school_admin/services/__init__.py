from .auth_service import AuthService
from .assignment_engine import AssignmentEngine, PromoteClassTeacher, PromoteStreamClassTeacher
from .assignment_modes import PlainMode, StreamedMode, resolve_mode
from .classroom_service import ClassroomService
from .teacher_service import TeacherService
from .subject_assignment_service import SubjectAssignmentService
from .workload_calculator import WorkloadCalculator
from .academic_year_service import AcademicYearService

__all__ = [
    "AuthService",
    "AssignmentEngine",
    "PromoteClassTeacher",
    "PromoteStreamClassTeacher",
    "PlainMode",
    "StreamedMode",
    "resolve_mode",
    "ClassroomService",
    "TeacherService",
    "SubjectAssignmentService",
    "WorkloadCalculator",
    "AcademicYearService"
]
