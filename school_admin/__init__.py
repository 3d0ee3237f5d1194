# school_admin/__init__.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from school_admin.core.config import settings
from school_admin.core.database import init_db, close_db
from school_admin.core.errors import register_exception_handlers
from school_admin.core.logging import logger
from school_admin.middleware.request_id import RequestIDMiddleware
from school_admin.routes import (
    auth_router,
    schools_router,
    teachers_router,
    classrooms_router,
    streams_router,
    subject_assignments_router,
    academic_years_router
)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant school administration API: teachers, classrooms, streams and subject assignments",
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(schools_router, prefix="/api/v1/schools", tags=["Schools"])
    app.include_router(teachers_router, prefix="/api/v1/teachers", tags=["Teachers"])
    app.include_router(classrooms_router, prefix="/api/v1/classrooms", tags=["Classrooms"])
    app.include_router(streams_router, prefix="/api/v1/streams", tags=["Streams"])
    app.include_router(subject_assignments_router, prefix="/api/v1/subject-assignments", tags=["Subject Assignments"])
    app.include_router(academic_years_router, prefix="/api/v1/academic-years", tags=["Academic Years"])

    @app.on_event("startup")
    async def startup_event():
        await init_db()
        logger.info("Application startup completed")

    @app.on_event("shutdown")
    async def shutdown_event():
        await close_db()
        logger.info("Application shutdown completed")

    return app
