"""
Posts routes: create, list, fetch, partial update and delete of image posts.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud
from ..auth import get_current_claims
from ..config import get_settings
from ..database import get_db
from ..logging_config import api_logger
from ..models.post import Post
from ..models.user import User
from ..responses import bad_request, created, forbidden, not_found, success
from ..schemas.auth import Claims
from ..schemas.posts import PostData, PostWithUser
from ..storage import MediaStore, get_post_store, read_upload
from ..validation import validate_post_description, validate_post_images, validate_post_name

settings = get_settings()

router = APIRouter(prefix="/api", tags=["posts"])


def post_to_dict(post: Post) -> dict:
    """Convert a Post model to its response shape, empty image slots dropped."""
    return PostData(
        id=post.id,
        userid=post.userid,
        name=post.name,
        description=post.description,
        imgs=post.image_names,
        created_at=post.created_at,
    ).model_dump()


def post_with_owner_to_dict(post: Post, owner: User) -> dict:
    return PostWithUser(
        id=post.id,
        user_id=post.userid,
        firstname=owner.firstname,
        lastname=owner.lastname,
        email=owner.email,
        profile=owner.profile,
        name=post.name,
        imgs=post.image_names,
        description=post.description,
        created_at=post.created_at,
    ).model_dump()


def get_owned_post(db: Session, post_id: int, claims: Claims, action: str) -> Post:
    """Resolve a post and make sure the caller owns it before anything else happens."""
    post = crud.get_post(db, post_id)
    if not post:
        not_found("Post")
    if post.userid != claims.id:
        api_logger.warning("Ownership check failed", post_id=post_id, user_id=claims.id)
        forbidden(f"You can only {action} your own posts")
    return post


@router.post("/post", status_code=status.HTTP_201_CREATED)
def create_post(
    name: str = Form(""),
    description: str = Form(""),
    postImgs: List[UploadFile] = File([]),
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
    post_store: MediaStore = Depends(get_post_store),
):
    """Create a post for the current user with one or more images."""
    files = [read_upload(upload, settings.max_image_bytes) for upload in postImgs]

    validate_post_name(name)
    validate_post_description(description)
    validate_post_images([filename for _, filename in files])

    saved = post_store.save_many(files)

    try:
        post = crud.create_post(db, claims.id, name, description, saved)
    except SQLAlchemyError:
        db.rollback()
        for filename in saved:
            post_store.discard(filename)
        raise

    api_logger.info("Post created", post_id=post.id, user_id=claims.id, images=len(saved))
    return created("User post uploaded successfully", post=post_to_dict(post))


@router.get("/allPost")
def get_all_posts(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
):
    """Newest posts first, each with its owner's display fields."""
    page_num, page_size = crud.parse_pagination(page, limit)
    rows, total = crud.list_posts_with_owner(db, page_num, page_size)
    return success(
        posts=[post_with_owner_to_dict(post, owner) for post, owner in rows],
        total_post=total,
    )


@router.get("/post/{post_id}")
def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
):
    post = crud.get_post(db, post_id)
    if not post:
        not_found("Post")
    return success(post=post_to_dict(post))


@router.put("/updatePost/{post_id}")
def update_post(
    post_id: int,
    name: str = Form(""),
    description: str = Form(""),
    deleteImg: List[str] = Form([]),
    postImgs: List[UploadFile] = File([]),
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
    post_store: MediaStore = Depends(get_post_store),
):
    """
    Apply any subset of {name, description, new images, image deletions}.

    Every check runs before the first file is touched, so a rejected request
    leaves disk and row as they were. Once files have been written or removed
    a failing UPDATE is not rolled back on disk.
    """
    post = get_owned_post(db, post_id, claims, "update")

    changes = {}
    name, description = name.strip(), description.strip()
    deletions = list(dict.fromkeys(img.strip() for img in deleteImg if img.strip()))

    if name:
        validate_post_name(name)
        changes["name"] = name
    if description:
        validate_post_description(description)
        changes["description"] = description

    new_files = [read_upload(upload, settings.max_image_bytes) for upload in postImgs]

    current = list(post.imgs or [])
    for img in deletions:
        if not post_store.exists(img):
            bad_request(f"File not found: {img}")
        if img not in current:
            bad_request(f"Image does not belong to this post: {img}")

    if deletions or new_files:
        for img in deletions:
            post_store.discard(img)
            current = [existing for existing in current if existing != img]
        current.extend(post_store.save_many(new_files))
        changes["imgs"] = current

    try:
        updated = crud.update_post_fields(db, post.id, changes)
    except SQLAlchemyError:
        db.rollback()
        api_logger.error(
            "Post update failed after media changes; files are not restored",
            post_id=post.id,
            removed=deletions,
        )
        raise
    if updated is None:
        not_found("Post")

    api_logger.info("Post updated", post_id=post.id, fields=sorted(changes))
    return success("Post updated successfully", post=post_to_dict(updated))


@router.delete("/deletePost/{post_id}")
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    claims: Claims = Depends(get_current_claims),
    post_store: MediaStore = Depends(get_post_store),
):
    """Delete the row, then its images. The row decides success."""
    post = get_owned_post(db, post_id, claims, "delete")
    images = post.image_names

    if crud.delete_post(db, post.id) == 0:
        bad_request("Cannot delete the post")

    for img in images:
        if post_store.exists(img):
            post_store.discard(img)
        else:
            api_logger.warning("Post image already missing", post_id=post_id, filename=img)

    api_logger.info("Post deleted", post_id=post_id, user_id=claims.id)
    return success("Post deleted successfully")
