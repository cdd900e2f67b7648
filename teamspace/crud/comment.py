# teamspace/crud/comment.py
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from teamspace.models.comment import Comment, REACTION_KINDS
from teamspace.models.user import User
from teamspace.core.exceptions import (
    CommentNotFound,
    CommentValidationError,
    PermissionDeniedError,
)
from teamspace.crud.activity import record_activity
from teamspace.crud.project import require_actor
from teamspace.crud.user import get_user, get_user_by_name
import logging

logger = logging.getLogger("Teamspace.Comments")

MENTION_RE = re.compile(r"@([A-Za-z0-9._-]+)")
COMMENT_SORTS = ("newest", "oldest", "most_liked", "most_replies")
PREVIEW_LENGTH = 50

def parse_mentions(db: Session, body: str) -> List[int]:
    """
    Находит @имя в тексте и резолвит в ID пользователей (точное совпадение имени).
    Нерезолвленные упоминания молча пропускаются.
    """
    found: List[int] = []
    for name in MENTION_RE.findall(body or ""):
        user = get_user_by_name(db, name)
        if user and user.id not in found:
            found.append(user.id)
    return found

def _merge_mentions(parsed: List[int], explicit: Optional[List[int]]) -> List[int]:
    merged = list(parsed)
    for user_id in explicit or []:
        if user_id not in merged:
            merged.append(user_id)
    return merged

def _preview(body: str) -> str:
    if len(body) <= PREVIEW_LENGTH:
        return body
    return body[:PREVIEW_LENGTH] + "..."

def _clean_body(body: Optional[str]) -> str:
    body = (body or "").strip()
    if not body:
        raise CommentValidationError("Comment body cannot be empty.")
    return body

def _ensure_author(comment: Comment, actor: User) -> None:
    if comment.author_id != actor.id:
        raise PermissionDeniedError("Only the author can modify this comment.")

# ==== Мутации ====

def create_comment(db: Session, data: dict, actor: Optional[User]) -> Comment:
    """
    Создаёт комментарий или ответ (parent_id). Упоминания = разобранные из текста
    ∪ явно переданные mentioned_user_ids.
    """
    actor = require_actor(actor)
    body = _clean_body(data.get("body"))
    target_id = str(data.get("target_id") or "").strip()
    target_type = (data.get("target_type") or "").strip()
    if not target_id or not target_type:
        raise CommentValidationError("Comment target is required.")

    parent_id = data.get("parent_id")
    if parent_id is not None:
        parent = get_comment(db, parent_id)
        if parent.target_id != target_id or parent.target_type != target_type:
            raise CommentValidationError("Reply must belong to the same target as its parent.")

    explicit = data.get("mentioned_user_ids") or []
    for user_id in explicit:
        get_user(db, user_id)
    mentions = _merge_mentions(parse_mentions(db, body), explicit)

    comment = Comment(
        author_id=actor.id,
        target_id=target_id,
        target_type=target_type,
        body=body,
        parent_id=parent_id,
        mentioned_user_ids=mentions,
        reactions={},
    )
    db.add(comment)
    try:
        db.flush()
        record_activity(
            db,
            user_id=actor.id,
            action_type="Created Comment",
            target_id=target_id,
            target_type=target_type,
            description=f"Commented: {_preview(body)}",
            metadata={"commentId": comment.id, "parentId": parent_id, "mentions": mentions},
        )
        db.commit()
        db.refresh(comment)
        logger.info(f"Created comment {comment.id} on {target_type}:{target_id}")
        return comment
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create comment: {e}")
        raise

def update_comment(db: Session, comment_id: int, data: dict, actor: Optional[User]) -> Comment:
    """
    Редактирование текста (только автор). Упоминания пересчитываются заново.
    """
    actor = require_actor(actor)
    comment = get_comment(db, comment_id)
    _ensure_author(comment, actor)
    body = _clean_body(data.get("body"))
    explicit = data.get("mentioned_user_ids")
    for user_id in explicit or []:
        get_user(db, user_id)

    old_body = comment.body
    comment.body = body
    comment.mentioned_user_ids = _merge_mentions(parse_mentions(db, body), explicit)
    comment.updated_at = datetime.now(timezone.utc)
    try:
        record_activity(
            db,
            user_id=actor.id,
            action_type="Updated Comment",
            target_id=comment.target_id,
            target_type=comment.target_type,
            description=f"Edited comment: {_preview(body)}",
            metadata={"commentId": comment.id, "previous": _preview(old_body), "current": _preview(body)},
        )
        db.commit()
        logger.info(f"Updated comment {comment.id}")
        return comment
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update comment {comment_id}: {e}")
        raise

def _collect_subtree(db: Session, root_id: int) -> List[int]:
    ids = [root_id]
    frontier = [root_id]
    while frontier:
        children = [
            row.id for row in db.query(Comment.id).filter(Comment.parent_id.in_(frontier)).all()
        ]
        ids.extend(children)
        frontier = children
    return ids

def delete_comment(db: Session, comment_id: int, actor: Optional[User]) -> bool:
    """
    Удаляет комментарий (только автор) вместе со всеми ответами.
    """
    actor = require_actor(actor)
    comment = get_comment(db, comment_id)
    _ensure_author(comment, actor)
    ids = _collect_subtree(db, comment.id)
    try:
        record_activity(
            db,
            user_id=actor.id,
            action_type="Deleted Comment",
            target_id=comment.target_id,
            target_type=comment.target_type,
            description=f"Deleted comment: {_preview(comment.body)}",
            metadata={"commentId": comment.id, "removedReplies": len(ids) - 1},
        )
        # Сначала листья: ответы ссылаются на родителя
        for doomed_id in reversed(ids):
            db.query(Comment).filter(Comment.id == doomed_id).delete(synchronize_session="fetch")
        db.commit()
        logger.info(f"Deleted comment {comment_id} with {len(ids) - 1} replies")
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete comment {comment_id}: {e}")
        raise

def _validate_reaction(kind: str) -> None:
    if kind not in REACTION_KINDS:
        raise CommentValidationError(f"Invalid reaction '{kind}'.")

def add_reaction(db: Session, comment_id: int, kind: str, actor: Optional[User]) -> Comment:
    """
    Добавляет реакцию пользователя. Повторная реакция того же вида ничего не меняет.
    """
    actor = require_actor(actor)
    _validate_reaction(kind)
    comment = get_comment(db, comment_id)
    reactions = {k: list(v) for k, v in (comment.reactions or {}).items()}
    users = reactions.setdefault(kind, [])
    if actor.id in users:
        return comment
    users.append(actor.id)
    # JSON-колонка не отслеживает мутации на месте
    comment.reactions = reactions
    try:
        record_activity(
            db,
            user_id=actor.id,
            action_type="Added Reaction",
            target_id=comment.target_id,
            target_type=comment.target_type,
            description=f"Reacted with {kind}",
            metadata={"commentId": comment.id, "reaction": kind},
        )
        db.commit()
        return comment
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to add reaction to comment {comment_id}: {e}")
        raise

def remove_reaction(db: Session, comment_id: int, kind: str, actor: Optional[User]) -> Comment:
    actor = require_actor(actor)
    _validate_reaction(kind)
    comment = get_comment(db, comment_id)
    reactions = {k: list(v) for k, v in (comment.reactions or {}).items()}
    users = reactions.get(kind, [])
    if actor.id not in users:
        return comment
    users.remove(actor.id)
    if users:
        reactions[kind] = users
    else:
        reactions.pop(kind, None)
    comment.reactions = reactions
    try:
        record_activity(
            db,
            user_id=actor.id,
            action_type="Removed Reaction",
            target_id=comment.target_id,
            target_type=comment.target_type,
            description=f"Removed {kind} reaction",
            metadata={"commentId": comment.id, "reaction": kind},
        )
        db.commit()
        return comment
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to remove reaction from comment {comment_id}: {e}")
        raise

# ==== Чтение ====

def get_comment(db: Session, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id) if comment_id is not None else None
    if not comment:
        raise CommentNotFound(f"Comment {comment_id} not found.")
    return comment

def count_replies(db: Session, comment_id: int) -> int:
    """Количество всех ответов в поддереве (рекурсивно)."""
    return len(_collect_subtree(db, comment_id)) - 1

def _likes(comment: Comment) -> int:
    reactions = comment.reactions or {}
    return len(reactions.get("heart", [])) + len(reactions.get("thumbs_up", []))

def _sort_key_created(comment: Comment):
    return (comment.created_at, comment.id)

def get_comments_by_target(
    db: Session,
    target_id: str,
    target_type: str,
    sort: str = "newest",
) -> List[Dict]:
    """
    Комментарии верхнего уровня для объекта с reply_count.
    sort: newest | oldest | most_liked (heart + thumbs_up) | most_replies.
    """
    if sort not in COMMENT_SORTS:
        raise CommentValidationError(f"Invalid sort '{sort}'.")
    comments = (
        db.query(Comment)
        .filter(
            Comment.target_id == str(target_id),
            Comment.target_type == target_type,
            Comment.parent_id.is_(None),
        )
        .all()
    )
    rows = [{"comment": c, "reply_count": count_replies(db, c.id)} for c in comments]
    rows.sort(key=lambda r: _sort_key_created(r["comment"]), reverse=(sort != "oldest"))
    if sort == "most_liked":
        rows.sort(key=lambda r: _likes(r["comment"]), reverse=True)
    elif sort == "most_replies":
        rows.sort(key=lambda r: r["reply_count"], reverse=True)
    return rows

def get_replies(db: Session, comment_id: int) -> List[Comment]:
    """Прямые ответы на комментарий, от старых к новым."""
    get_comment(db, comment_id)
    return (
        db.query(Comment)
        .filter(Comment.parent_id == comment_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )

def get_comments_by_author(db: Session, author_id: int, limit: int = 50) -> List[Comment]:
    return (
        db.query(Comment)
        .filter(Comment.author_id == author_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .limit(limit)
        .all()
    )
