from .auth import router as auth_router
from .schools import router as schools_router
from .teachers import router as teachers_router
from .classrooms import router as classrooms_router
from .streams import router as streams_router
from .subject_assignments import router as subject_assignments_router
from .academic_years import router as academic_years_router


__all__ = [
    "auth_router",
    "schools_router",
    "teachers_router",
    "classrooms_router",
    "streams_router",
    "subject_assignments_router",
    "academic_years_router"
]
