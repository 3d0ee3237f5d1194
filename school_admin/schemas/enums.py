from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    SCHOOL_ADMIN = "school_admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class CurriculumType(str, Enum):
    CBC = "CBC"
    EIGHT_FOUR_FOUR = "8-4-4"
    BOTH = "Both"


class EducationalLevel(str, Enum):
    PRE_PRIMARY = "Pre-Primary"
    PRIMARY = "Primary"
    JUNIOR_SECONDARY = "Junior Secondary"
    SENIOR_SECONDARY = "Senior Secondary"
    SECONDARY = "Secondary (8-4-4)"


class Pathway(str, Enum):
    STEM = "STEM"
    ARTS = "Arts"
    SOCIAL_SCIENCES = "Social Sciences"


class AssignmentType(str, Enum):
    MAIN_TEACHER = "main_teacher"
    ASSISTANT_TEACHER = "assistant_teacher"
    SUBSTITUTE = "substitute"


class WorkloadStatus(str, Enum):
    OVERLOADED = "overloaded"
    UNDERLOADED = "underloaded"
    OPTIMAL = "optimal"


# Curricula a single-curriculum value stands for
CURRICULUM_COVERAGE = {
    CurriculumType.CBC: {CurriculumType.CBC},
    CurriculumType.EIGHT_FOUR_FOUR: {CurriculumType.EIGHT_FOUR_FOUR},
    CurriculumType.BOTH: {CurriculumType.CBC, CurriculumType.EIGHT_FOUR_FOUR},
}
