from .error import ErrorResponse, MessageResponse

__all__ = ['ErrorResponse', 'MessageResponse']
