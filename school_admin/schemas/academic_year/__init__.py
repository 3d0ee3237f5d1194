from .requests import (
    AcademicYearCreateRequest,
    AcademicYearUpdateRequest,
    BulkTermsCreateRequest,
    TermSpec
)
from .responses import AcademicYearResponse, BulkTermsResponse

__all__ = [
    'AcademicYearCreateRequest',
    'AcademicYearUpdateRequest',
    'BulkTermsCreateRequest',
    'TermSpec',
    'AcademicYearResponse',
    'BulkTermsResponse'
]
