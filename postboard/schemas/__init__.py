from .auth import UserLogin, Claims
from .users import UserResponse, ChangePasswordRequest
from .posts import PostData, PostWithUser

__all__ = [
    "UserLogin", "Claims",
    "UserResponse", "ChangePasswordRequest",
    "PostData", "PostWithUser",
]
