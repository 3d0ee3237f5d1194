from fastapi import APIRouter, Depends

from school_admin.core.dependencies import TenantContext, get_tenant_context
from school_admin.schemas.school import SchoolConfigResponse
from school_admin.services.school_config import school_config

router = APIRouter(tags=["Schools"])


@router.get("/config", response_model=SchoolConfigResponse)
async def get_school_config(context: TenantContext = Depends(get_tenant_context)):
    """Curricula, levels, pathways and assignment mode of the caller's school"""
    return school_config(context.school)
