from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.database import get_db
from school_admin.core.dependencies import TenantContext, get_admin_context, get_tenant_context
from school_admin.schemas.assignment import (
    AssignTeacherRequest,
    AssignmentLinkResponse,
    BulkTeacherAssignmentResponse,
    BulkTeachersRequest,
    ClassTeacherRequest
)
from school_admin.schemas.classroom import (
    ClassroomCreateRequest,
    ClassroomResponse,
    ClassroomUpdateRequest,
    StreamCreateRequest,
    StreamResponse
)
from school_admin.schemas.common import MessageResponse
from school_admin.services.assignment_engine import AssignmentEngine
from school_admin.services.classroom_service import ClassroomService

router = APIRouter(tags=["Classrooms"])


@router.post("", response_model=ClassroomResponse, status_code=status.HTTP_201_CREATED)
async def create_classroom(
    data: ClassroomCreateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    """Create a classroom with its streams (streamed schools) or teachers (plain schools)"""
    return await ClassroomService(db, context.school).create_classroom(data)


@router.get("", response_model=List[ClassroomResponse])
async def list_classrooms(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await ClassroomService(db, context.school).list_classrooms()


@router.get("/{classroom_id}", response_model=ClassroomResponse)
async def get_classroom(
    classroom_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await ClassroomService(db, context.school).get_classroom(classroom_id)


@router.put("/{classroom_id}", response_model=ClassroomResponse)
async def update_classroom(
    classroom_id: int,
    data: ClassroomUpdateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await ClassroomService(db, context.school).update_classroom(classroom_id, data)


@router.delete("/{classroom_id}", response_model=MessageResponse)
async def delete_classroom(
    classroom_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await ClassroomService(db, context.school).delete_classroom(classroom_id)
    return {"message": "Classroom deleted successfully"}


@router.post("/{classroom_id}/streams", response_model=StreamResponse, status_code=status.HTTP_201_CREATED)
async def add_stream(
    classroom_id: int,
    data: StreamCreateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await ClassroomService(db, context.school).add_stream(classroom_id, data)


@router.get("/{classroom_id}/streams", response_model=List[StreamResponse])
async def list_streams(
    classroom_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await ClassroomService(db, context.school).list_streams(classroom_id)


@router.post(
    "/{classroom_id}/teachers",
    response_model=AssignmentLinkResponse,
    status_code=status.HTTP_201_CREATED
)
async def assign_teacher(
    classroom_id: int,
    data: AssignTeacherRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    link = await AssignmentEngine(db, context.school).assign_teacher_to_classroom(
        classroom_id, data.teacher_id, data.is_class_teacher
    )
    return {"message": "Teacher assigned to classroom successfully", "link": link}


@router.post("/{classroom_id}/teachers/bulk", response_model=BulkTeacherAssignmentResponse)
async def assign_teachers(
    classroom_id: int,
    data: BulkTeachersRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await AssignmentEngine(db, context.school).assign_teachers_to_classroom(
        classroom_id, data.teacher_ids
    )


@router.delete("/{classroom_id}/teachers/{teacher_id}", response_model=MessageResponse)
async def remove_teacher(
    classroom_id: int,
    teacher_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await AssignmentEngine(db, context.school).remove_teacher_from_classroom(classroom_id, teacher_id)
    return {"message": "Teacher removed from classroom successfully"}


@router.post("/{classroom_id}/class-teacher", response_model=ClassroomResponse)
async def assign_class_teacher(
    classroom_id: int,
    data: ClassTeacherRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    """Make a teacher the class teacher, replacing the current one"""
    return await AssignmentEngine(db, context.school).assign_class_teacher(classroom_id, data.teacher_id)


@router.delete("/{classroom_id}/class-teacher", response_model=MessageResponse)
async def remove_class_teacher(
    classroom_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    removed = await AssignmentEngine(db, context.school).remove_class_teacher(classroom_id)
    if removed:
        return {"message": "Class teacher removed successfully"}
    return {"message": "Classroom has no class teacher"}
