from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.database import get_db
from school_admin.core.dependencies import TenantContext, get_admin_context, get_tenant_context
from school_admin.schemas.assignment import (
    BulkTeacherAssignmentResponse,
    BulkTeachersRequest,
    ClassTeacherEntry,
    ClassTeacherRequest
)
from school_admin.schemas.classroom import StreamResponse, StreamTeacherEntry, StreamUpdateRequest
from school_admin.schemas.common import MessageResponse
from school_admin.services.assignment_engine import AssignmentEngine
from school_admin.services.classroom_service import ClassroomService

router = APIRouter(tags=["Streams"])


@router.get("/class-teachers", response_model=List[ClassTeacherEntry])
async def list_stream_class_teachers(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    engine = AssignmentEngine(db, context.school)
    engine.mode.require_streamed()
    return await engine.class_teachers()


@router.get("/{stream_id}", response_model=StreamResponse)
async def get_stream(
    stream_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await ClassroomService(db, context.school).get_stream(stream_id)


@router.put("/{stream_id}", response_model=StreamResponse)
async def update_stream(
    stream_id: int,
    data: StreamUpdateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await ClassroomService(db, context.school).update_stream(stream_id, data)


@router.delete("/{stream_id}", response_model=MessageResponse)
async def delete_stream(
    stream_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await ClassroomService(db, context.school).delete_stream(stream_id)
    return {"message": "Stream deleted successfully"}


@router.post("/{stream_id}/class-teacher", response_model=StreamResponse)
async def assign_class_teacher(
    stream_id: int,
    data: ClassTeacherRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await AssignmentEngine(db, context.school).assign_class_teacher_to_stream(stream_id, data.teacher_id)


@router.delete("/{stream_id}/class-teacher", response_model=MessageResponse)
async def remove_class_teacher(
    stream_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    removed = await AssignmentEngine(db, context.school).remove_class_teacher_from_stream(stream_id)
    if removed:
        return {"message": "Class teacher removed successfully"}
    return {"message": "Stream has no class teacher"}


@router.post("/{stream_id}/teachers", response_model=BulkTeacherAssignmentResponse)
async def assign_teachers(
    stream_id: int,
    data: BulkTeachersRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await AssignmentEngine(db, context.school).assign_teachers_to_stream(stream_id, data.teacher_ids)


@router.get("/{stream_id}/teachers", response_model=List[StreamTeacherEntry])
async def list_stream_teachers(
    stream_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    stream = await ClassroomService(db, context.school).get_stream(stream_id)
    return stream.teacher_links


@router.delete("/{stream_id}/teachers/{teacher_id}", response_model=MessageResponse)
async def remove_teacher(
    stream_id: int,
    teacher_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await AssignmentEngine(db, context.school).remove_teacher_from_stream(stream_id, teacher_id)
    return {"message": "Teacher removed from stream successfully"}
