from .requests import LoginRequest
from .responses import LoginResponse, UserResponse

__all__ = ['LoginRequest', 'LoginResponse', 'UserResponse']
