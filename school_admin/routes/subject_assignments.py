from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.database import get_db
from school_admin.core.dependencies import TenantContext, get_admin_context, get_tenant_context
from school_admin.schemas.common import MessageResponse
from school_admin.schemas.subject_assignment import (
    SubjectAssignmentBatchRequest,
    SubjectAssignmentBatchResponse,
    SubjectAssignmentCreateRequest,
    SubjectAssignmentCreatedResponse,
    SubjectAssignmentPreviewResponse,
    SubjectAssignmentResponse,
    SubjectAssignmentUpdateRequest
)
from school_admin.services.subject_assignment_service import SubjectAssignmentService

router = APIRouter(tags=["Subject Assignments"])


@router.post("", response_model=SubjectAssignmentCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    data: SubjectAssignmentCreateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await SubjectAssignmentService(db, context.school).create_assignment(data)


@router.post("/batch", response_model=SubjectAssignmentBatchResponse, status_code=status.HTTP_201_CREATED)
async def create_batch(
    data: SubjectAssignmentBatchRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    """All or nothing"""
    return await SubjectAssignmentService(db, context.school).create_batch(data.assignments)


@router.post("/validate", response_model=SubjectAssignmentPreviewResponse)
async def validate_assignment(
    data: SubjectAssignmentCreateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await SubjectAssignmentService(db, context.school).preview(data)


@router.get("", response_model=List[SubjectAssignmentResponse])
async def list_assignments(
    teacher_id: Optional[int] = None,
    subject_id: Optional[int] = None,
    academic_year_id: Optional[int] = None,
    stream_id: Optional[int] = None,
    classroom_id: Optional[int] = None,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await SubjectAssignmentService(db, context.school).list_assignments(
        teacher_id=teacher_id,
        subject_id=subject_id,
        academic_year_id=academic_year_id,
        stream_id=stream_id,
        classroom_id=classroom_id
    )


@router.get("/{assignment_id}", response_model=SubjectAssignmentResponse)
async def get_assignment(
    assignment_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await SubjectAssignmentService(db, context.school).get_assignment(assignment_id)


@router.put("/{assignment_id}", response_model=SubjectAssignmentResponse)
async def update_assignment(
    assignment_id: int,
    data: SubjectAssignmentUpdateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await SubjectAssignmentService(db, context.school).update_assignment(assignment_id, data)


@router.delete("/{assignment_id}", response_model=MessageResponse)
async def delete_assignment(
    assignment_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await SubjectAssignmentService(db, context.school).delete_assignment(assignment_id)
    return {"message": "Subject assignment deleted successfully"}
