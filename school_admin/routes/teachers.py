from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.database import get_db
from school_admin.core.dependencies import TenantContext, get_admin_context, get_tenant_context
from school_admin.schemas.assignment import (
    AssignToMultipleClassroomsRequest,
    AvailableClassroomsResponse,
    BulkClassroomAssignmentResponse,
    ClassTeacherEntry,
    TeacherClassesResponse
)
from school_admin.schemas.common import MessageResponse
from school_admin.schemas.enums import CurriculumType
from school_admin.schemas.teacher import (
    QualifiedSubjectRequest,
    QualifiedSubjectResponse,
    TeacherCombinationResponse,
    TeacherCreateRequest,
    TeacherDetailResponse,
    TeacherResponse,
    TeacherUpdateRequest,
    WorkloadReportResponse,
    WorkloadResponse
)
from school_admin.services.assignment_engine import AssignmentEngine
from school_admin.services.subject_assignment_service import SubjectAssignmentService
from school_admin.services.teacher_service import TeacherService

router = APIRouter(tags=["Teachers"])


# Fixed paths first so they are not captured by /{teacher_id}

@router.get("/combinations", response_model=List[TeacherCombinationResponse])
async def list_combinations(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await TeacherService(db, context.school).list_combinations()


@router.get("/class-teachers", response_model=List[ClassTeacherEntry])
async def list_class_teachers(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await AssignmentEngine(db, context.school).class_teachers()


@router.get("/workload-report", response_model=WorkloadReportResponse)
async def workload_report(
    academic_year_id: Optional[int] = Query(default=None, ge=1),
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await SubjectAssignmentService(db, context.school).workload_report(academic_year_id)


@router.post("/assign-to-multiple-classrooms", response_model=BulkClassroomAssignmentResponse)
async def assign_to_multiple_classrooms(
    data: AssignToMultipleClassroomsRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    """Attach one teacher to several classrooms; nothing is written if they do not all fit"""
    return await AssignmentEngine(db, context.school).assign_teacher_to_many_classrooms(
        data.teacher_id, data.classroom_ids
    )


@router.post("", response_model=TeacherResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher(
    data: TeacherCreateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await TeacherService(db, context.school).create_teacher(data)


@router.get("", response_model=List[TeacherResponse])
async def list_teachers(
    curriculum: Optional[CurriculumType] = None,
    has_capacity: Optional[bool] = None,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await TeacherService(db, context.school).list_teachers(curriculum, has_capacity)


@router.get("/{teacher_id}", response_model=TeacherDetailResponse)
async def get_teacher(
    teacher_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await TeacherService(db, context.school).get_teacher_detail(teacher_id)


@router.put("/{teacher_id}", response_model=TeacherResponse)
async def update_teacher(
    teacher_id: int,
    data: TeacherUpdateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await TeacherService(db, context.school).update_teacher(teacher_id, data)


@router.delete("/{teacher_id}", response_model=MessageResponse)
async def delete_teacher(
    teacher_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await TeacherService(db, context.school).delete_teacher(teacher_id)
    return {"message": "Teacher deleted successfully"}


@router.get("/{teacher_id}/available-classrooms", response_model=AvailableClassroomsResponse)
async def available_classrooms(
    teacher_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await AssignmentEngine(db, context.school).available_classrooms(teacher_id)


@router.get("/{teacher_id}/workload", response_model=WorkloadResponse)
async def teacher_workload(
    teacher_id: int,
    academic_year_id: Optional[int] = Query(default=None, ge=1),
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await SubjectAssignmentService(db, context.school).teacher_workload(teacher_id, academic_year_id)


@router.get("/{teacher_id}/classrooms", response_model=TeacherClassesResponse)
async def teacher_classes(
    teacher_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """Classrooms the teacher is attached to, or streams when the school uses them"""
    return await AssignmentEngine(db, context.school).teacher_classes(teacher_id)


@router.get("/{teacher_id}/subjects", response_model=List[QualifiedSubjectResponse])
async def list_qualified_subjects(
    teacher_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await TeacherService(db, context.school).list_qualified_subjects(teacher_id)


@router.post("/{teacher_id}/subjects", response_model=List[QualifiedSubjectResponse])
async def add_qualified_subject(
    teacher_id: int,
    data: QualifiedSubjectRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await TeacherService(db, context.school).add_qualified_subject(teacher_id, data)


@router.delete("/{teacher_id}/subjects/{subject_id}", response_model=MessageResponse)
async def remove_qualified_subject(
    teacher_id: int,
    subject_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await TeacherService(db, context.school).remove_qualified_subject(teacher_id, subject_id)
    return {"message": "Subject removed from the teacher's qualified list"}
