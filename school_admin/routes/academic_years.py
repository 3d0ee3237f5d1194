from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.database import get_db
from school_admin.core.dependencies import TenantContext, get_admin_context, get_tenant_context
from school_admin.schemas.academic_year import (
    AcademicYearCreateRequest,
    AcademicYearResponse,
    AcademicYearUpdateRequest,
    BulkTermsCreateRequest,
    BulkTermsResponse
)
from school_admin.schemas.common import MessageResponse
from school_admin.schemas.enums import CurriculumType
from school_admin.services.academic_year_service import AcademicYearService

router = APIRouter(tags=["Academic Years"])


@router.post("", response_model=AcademicYearResponse, status_code=status.HTTP_201_CREATED)
async def create_academic_year(
    data: AcademicYearCreateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await AcademicYearService(db, context.school).create_academic_year(data)


@router.post("/bulk", response_model=BulkTermsResponse, status_code=status.HTTP_201_CREATED)
async def create_bulk_terms(
    data: BulkTermsCreateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    records = await AcademicYearService(db, context.school).create_bulk_terms(data)
    return {"message": f"{len(records)} term(s) created for {data.year}", "academic_years": records}


@router.get("", response_model=List[AcademicYearResponse])
async def list_academic_years(
    year: Optional[int] = None,
    curriculum: Optional[CurriculumType] = None,
    is_active: Optional[bool] = None,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await AcademicYearService(db, context.school).list_academic_years(year, curriculum, is_active)


@router.get("/active", response_model=AcademicYearResponse)
async def get_active_academic_year(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await AcademicYearService(db, context.school).get_active()


@router.get("/{academic_year_id}", response_model=AcademicYearResponse)
async def get_academic_year(
    academic_year_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    return await AcademicYearService(db, context.school).get_academic_year(academic_year_id)


@router.put("/{academic_year_id}", response_model=AcademicYearResponse)
async def update_academic_year(
    academic_year_id: int,
    data: AcademicYearUpdateRequest,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    return await AcademicYearService(db, context.school).update_academic_year(academic_year_id, data)


@router.post("/{academic_year_id}/activate", response_model=AcademicYearResponse)
async def activate_academic_year(
    academic_year_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    """Make this the school's only active academic year"""
    return await AcademicYearService(db, context.school).set_active(academic_year_id)


@router.delete("/{academic_year_id}", response_model=MessageResponse)
async def delete_academic_year(
    academic_year_id: int,
    context: TenantContext = Depends(get_admin_context),
    db: AsyncSession = Depends(get_db)
):
    await AcademicYearService(db, context.school).delete_academic_year(academic_year_id)
    return {"message": "Academic year deleted successfully"}
