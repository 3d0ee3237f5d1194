from .base import Base, TenantModel
from .school import School
from .user import User
from .teacher_combination import TeacherCombination
from .teacher import Teacher, TeacherSubject
from .classroom import Classroom, ClassroomTeacher
from .stream import Stream, StreamTeacher
from .subject import Subject
from .academic_year import AcademicYear
from .subject_assignment import SubjectAssignment

__all__ = [
    'Base',
    'TenantModel',
    'School',
    'User',
    'TeacherCombination',
    'Teacher',
    'TeacherSubject',
    'Classroom',
    'ClassroomTeacher',
    'Stream',
    'StreamTeacher',
    'Subject',
    'AcademicYear',
    'SubjectAssignment'
]
