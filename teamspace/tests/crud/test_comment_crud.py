import pytest
from sqlalchemy.orm import Session
from teamspace.crud.comment import (
    add_reaction,
    count_replies,
    create_comment,
    delete_comment,
    get_comment,
    get_comments_by_author,
    get_comments_by_target,
    get_replies,
    remove_reaction,
    update_comment,
)
from teamspace.models.activity import ActivityRecord
from teamspace.models.comment import Comment
from teamspace.core.exceptions import (
    CommentNotFound,
    CommentValidationError,
    PermissionDeniedError,
    UserNotFound,
)


@pytest.fixture
def comment_factory(db: Session, test_user):
    def _make(body="hello", target_id="42", target_type="task", actor=None, **extra):
        return create_comment(db, {
            "target_id": target_id,
            "target_type": target_type,
            "body": body,
            **extra,
        }, actor or test_user)
    return _make


def test_mentions_union_parsed_and_explicit(db: Session, comment_factory, test_user, teammate):
    comment = comment_factory(body="hello @alice @bob", mentioned_user_ids=[teammate.id])

    assert sorted(comment.mentioned_user_ids) == sorted([test_user.id, teammate.id])
    assert len(comment.mentioned_user_ids) == 2


def test_mentions_independent_of_order(db: Session, comment_factory, test_user, teammate):
    comment = comment_factory(body="ping @bob", mentioned_user_ids=[test_user.id, teammate.id])
    assert set(comment.mentioned_user_ids) == {test_user.id, teammate.id}
    assert len(comment.mentioned_user_ids) == 2


def test_unknown_mentions_are_skipped(db: Session, comment_factory):
    comment = comment_factory(body="hey @nobody_here")
    assert comment.mentioned_user_ids == []


def test_explicit_unknown_user_rejected(db: Session, comment_factory):
    with pytest.raises(UserNotFound):
        comment_factory(mentioned_user_ids=[999999])


def test_blank_body_rejected(db: Session, comment_factory):
    with pytest.raises(CommentValidationError):
        comment_factory(body="   ")
    assert db.query(Comment).count() == 0


def test_create_comment_logs_preview(db: Session, comment_factory, test_user):
    body = "x" * 80
    comment = comment_factory(body=body)

    record = db.query(ActivityRecord).filter_by(action_type="Created Comment").one()
    assert record.user_id == test_user.id
    assert record.target_id == "42"
    assert record.meta["commentId"] == comment.id
    assert "x" * 50 in record.description
    assert "x" * 51 not in record.description


def test_reply_requires_existing_parent(db: Session, comment_factory):
    with pytest.raises(CommentNotFound):
        comment_factory(parent_id=999999)


def test_reply_must_share_target(db: Session, comment_factory):
    parent = comment_factory(target_id="1")
    with pytest.raises(CommentValidationError):
        comment_factory(target_id="2", parent_id=parent.id)


def test_update_comment_author_only(db: Session, comment_factory, teammate, test_user):
    comment = comment_factory(body="first")

    with pytest.raises(PermissionDeniedError):
        update_comment(db, comment.id, {"body": "stolen"}, teammate)

    updated = update_comment(db, comment.id, {"body": "second @bob"}, test_user)
    assert updated.body == "second @bob"
    assert updated.updated_at is not None
    assert updated.mentioned_user_ids == [teammate.id]
    assert db.query(ActivityRecord).filter_by(action_type="Updated Comment").count() == 1


def test_delete_comment_removes_reply_subtree(db: Session, comment_factory, teammate, test_user):
    root = comment_factory(body="root")
    reply = comment_factory(body="reply", parent_id=root.id, actor=teammate)
    comment_factory(body="nested", parent_id=reply.id)
    other = comment_factory(body="unrelated")
    assert count_replies(db, root.id) == 2

    with pytest.raises(PermissionDeniedError):
        delete_comment(db, root.id, teammate)

    delete_comment(db, root.id, test_user)

    assert [c.id for c in db.query(Comment).all()] == [other.id]
    assert db.query(ActivityRecord).filter_by(action_type="Deleted Comment").count() == 1


def test_reaction_add_then_remove_drops_key(db: Session, comment_factory, test_user):
    comment = comment_factory()

    add_reaction(db, comment.id, "heart", test_user)
    assert get_comment(db, comment.id).reactions == {"heart": [test_user.id]}

    remove_reaction(db, comment.id, "heart", test_user)
    db.refresh(comment)
    assert "heart" not in comment.reactions
    assert comment.reactions == {}


def test_add_reaction_idempotent(db: Session, comment_factory, test_user, teammate):
    comment = comment_factory()
    add_reaction(db, comment.id, "thumbs_up", test_user)
    add_reaction(db, comment.id, "thumbs_up", test_user)
    add_reaction(db, comment.id, "thumbs_up", teammate)

    db.refresh(comment)
    assert comment.reactions["thumbs_up"] == [test_user.id, teammate.id]
    assert db.query(ActivityRecord).filter_by(action_type="Added Reaction").count() == 2


def test_remove_one_user_keeps_others(db: Session, comment_factory, test_user, teammate):
    comment = comment_factory()
    add_reaction(db, comment.id, "heart", test_user)
    add_reaction(db, comment.id, "heart", teammate)

    remove_reaction(db, comment.id, "heart", test_user)
    db.refresh(comment)
    assert comment.reactions == {"heart": [teammate.id]}


def test_invalid_reaction(db: Session, comment_factory, test_user):
    comment = comment_factory()
    with pytest.raises(CommentValidationError):
        add_reaction(db, comment.id, "rocket", test_user)


def test_comments_by_target_sorting(db: Session, comment_factory, test_user, teammate):
    first = comment_factory(body="first")
    second = comment_factory(body="second")
    third = comment_factory(body="third")
    comment_factory(body="elsewhere", target_id="99")
    comment_factory(body="reply", parent_id=first.id)
    comment_factory(body="reply 2", parent_id=first.id)
    add_reaction(db, second.id, "heart", test_user)
    add_reaction(db, second.id, "thumbs_up", teammate)
    add_reaction(db, third.id, "thumbs_down", teammate)

    def ids(sort):
        return [row["comment"].id for row in get_comments_by_target(db, "42", "task", sort=sort)]

    assert ids("newest") == [third.id, second.id, first.id]
    assert ids("oldest") == [first.id, second.id, third.id]
    assert ids("most_liked")[0] == second.id
    assert ids("most_replies")[0] == first.id
    rows = get_comments_by_target(db, "42", "task", sort="oldest")
    assert [row["reply_count"] for row in rows] == [2, 0, 0]


def test_comments_by_target_invalid_sort(db: Session):
    with pytest.raises(CommentValidationError):
        get_comments_by_target(db, "42", "task", sort="random")


def test_replies_and_author_listing(db: Session, comment_factory, teammate, test_user):
    root = comment_factory(body="root")
    reply = comment_factory(body="reply", parent_id=root.id, actor=teammate)

    assert [c.id for c in get_replies(db, root.id)] == [reply.id]
    assert [c.id for c in get_comments_by_author(db, teammate.id)] == [reply.id]
    assert [c.id for c in get_comments_by_author(db, test_user.id)] == [root.id]
