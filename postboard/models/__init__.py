from .user import User
from .post import Post

__all__ = [
    "User",
    "Post",
]
