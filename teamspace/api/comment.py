# teamspace/api/comment.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List
from teamspace.schemas.comment import (
    CommentCreate,
    CommentRead,
    CommentUpdate,
    CommentWithReplies,
    ReactionIn,
)
from teamspace.schemas.response import SuccessResponse
from teamspace.crud.comment import (
    add_reaction,
    create_comment,
    delete_comment,
    get_comment,
    get_comments_by_author,
    get_comments_by_target,
    get_replies,
    remove_reaction,
    update_comment,
)
from teamspace.core.exceptions import BaseAppException
from teamspace.dependencies import get_db, get_current_active_user
from teamspace.models.user import User as DBUser
import logging

router = APIRouter(prefix="/comments", tags=["Comments"])
logger = logging.getLogger("Teamspace.CommentsAPI")

@router.post("/", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
def create_new_comment(
    data: CommentCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Оставить комментарий или ответ. @имя в тексте превращается в упоминание.
    """
    try:
        return create_comment(db, data.model_dump(), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error in create_new_comment: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create comment.")

@router.get("/", response_model=List[CommentWithReplies])
def list_comments(
    target_id: str = Query(...),
    target_type: str = Query(...),
    sort: str = Query("newest"),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Комментарии верхнего уровня для объекта с числом ответов.
    """
    rows = get_comments_by_target(db, target_id, target_type, sort=sort)
    return [
        CommentWithReplies(
            **CommentRead.model_validate(row["comment"]).model_dump(),
            reply_count=row["reply_count"],
        )
        for row in rows
    ]

@router.get("/by_author/{user_id}", response_model=List[CommentRead])
def list_author_comments(
    user_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    return get_comments_by_author(db, user_id, limit=limit)

@router.get("/{comment_id}", response_model=CommentRead)
def read_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    return get_comment(db, comment_id)

@router.get("/{comment_id}/replies", response_model=List[CommentRead])
def list_replies(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    return get_replies(db, comment_id)

@router.patch("/{comment_id}", response_model=CommentRead)
def edit_comment(
    comment_id: int,
    data: CommentUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Редактировать комментарий (только автор).
    """
    try:
        return update_comment(db, comment_id, data.model_dump(exclude_unset=True), current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to update comment {comment_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update comment.")

@router.delete("/{comment_id}", response_model=SuccessResponse)
def remove_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Удалить комментарий вместе с ответами (только автор).
    """
    try:
        delete_comment(db, comment_id, current_user)
        return SuccessResponse(result=comment_id, detail="Comment deleted")
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete comment {comment_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete comment.")

@router.post("/{comment_id}/reactions", response_model=CommentRead)
def react(
    comment_id: int,
    data: ReactionIn,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return add_reaction(db, comment_id, data.kind, current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to add reaction to comment {comment_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to add reaction.")

@router.delete("/{comment_id}/reactions/{kind}", response_model=CommentRead)
def unreact(
    comment_id: int,
    kind: str,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return remove_reaction(db, comment_id, kind, current_user)
    except BaseAppException:
        raise
    except Exception as e:
        logger.error(f"Failed to remove reaction from comment {comment_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to remove reaction.")
