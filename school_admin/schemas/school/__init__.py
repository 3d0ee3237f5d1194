from .responses import SchoolConfigResponse

__all__ = ['SchoolConfigResponse']
