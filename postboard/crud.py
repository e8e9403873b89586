"""
Relational store operations for users and posts.

All functions take the request's Session. Writes commit immediately; a
failing write propagates as SQLAlchemyError and is turned into a 500 by the
application's exception handler.
"""
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .config import get_settings
from .models.post import Post
from .models.user import User


def parse_pagination(page: Optional[str], limit: Optional[str]) -> Tuple[int, int]:
    """Read page/limit query values, falling back to the defaults when absent or unusable."""
    settings = get_settings()

    def _parse(raw: Optional[str], default: int) -> int:
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return default
        return value if value >= 1 else default

    return _parse(page, settings.default_page), _parse(limit, settings.default_page_size)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


# ============================================================
# USERS
# ============================================================

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def email_taken(db: Session, email: str, exclude_user_id: Optional[int] = None) -> bool:
    """True when another user already holds `email`."""
    query = db.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def create_user(db: Session, **fields: Any) -> User:
    user = User(**fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def list_users(db: Session, page: int, limit: int) -> Tuple[List[User], int]:
    users = (
        db.query(User)
        .order_by(User.id.asc())
        .limit(limit)
        .offset(page_offset(page, limit))
        .all()
    )
    total = db.query(User).count()
    return users, total


def update_user_fields(db: Session, user_id: int, changes: Dict[str, Any]) -> Optional[User]:
    """Set only the keys present in `changes` with a single UPDATE."""
    if changes:
        db.query(User).filter(User.id == user_id).update(changes, synchronize_session="fetch")
        db.commit()
    user = get_user(db, user_id)
    if user is not None:
        db.refresh(user)
    return user


# ============================================================
# POSTS
# ============================================================

def get_post(db: Session, post_id: int) -> Optional[Post]:
    return db.query(Post).filter(Post.id == post_id).first()


def create_post(db: Session, userid: int, name: str, description: str, imgs: List[str]) -> Post:
    post = Post(userid=userid, name=name, description=description, imgs=list(imgs))
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def list_posts_with_owner(db: Session, page: int, limit: int) -> Tuple[List[Tuple[Post, User]], int]:
    """Newest posts first, each paired with its owner. Orphaned posts drop out of the join."""
    rows = (
        db.query(Post, User)
        .join(User, Post.userid == User.id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(limit)
        .offset(page_offset(page, limit))
        .all()
    )
    total = db.query(Post).count()
    return [(post, user) for post, user in rows], total


def update_post_fields(db: Session, post_id: int, changes: Dict[str, Any]) -> Optional[Post]:
    """Set only the keys present in `changes` with a single UPDATE."""
    if changes:
        db.query(Post).filter(Post.id == post_id).update(changes, synchronize_session="fetch")
        db.commit()
    post = get_post(db, post_id)
    if post is not None:
        db.refresh(post)
    return post


def delete_post(db: Session, post_id: int) -> int:
    """Delete the row and return how many rows went away."""
    count = db.query(Post).filter(Post.id == post_id).delete(synchronize_session="fetch")
    db.commit()
    return count
