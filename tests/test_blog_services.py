from datetime import timedelta

import pytest
from pydantic import ValidationError

from tapscopes.errors import InvalidModifierError, NotFoundError
from tapscopes.schemas.blog import CommentCreate, PostCreate, UserCreate
from tapscopes.services import blog as blog_service


def test_create_user_post_and_comment(db_session, now):
    user = blog_service.users.create(db_session, UserCreate(name="  Linus ", email="linus@example.com"))
    post = blog_service.posts.create(
        db_session,
        PostCreate(user_id=user.id, title="Hello", body="First!", published_at=now),
    )
    comment = blog_service.comments.create(
        db_session,
        CommentCreate(post_id=post.id, user_id=user.id, body="Welcome"),
    )

    assert user.name == "Linus"
    assert blog_service.posts.get(db_session, post.id).title == "Hello"
    assert blog_service.comments.get(db_session, comment.id).post_id == post.id
    assert [c.id for c in blog_service.comments.list_for_post(db_session, post.id)] == [comment.id]


def test_create_post_requires_existing_user(db_session):
    with pytest.raises(NotFoundError, match="User not found"):
        blog_service.posts.create(db_session, PostCreate(user_id=999, title="Orphan"))


def test_create_comment_requires_existing_post(db_session, ada):
    with pytest.raises(NotFoundError) as excinfo:
        blog_service.comments.create(db_session, CommentCreate(post_id=999, user_id=ada.id, body="?"))

    assert excinfo.value.code == "post_not_found"


def test_get_missing_records(db_session):
    with pytest.raises(NotFoundError):
        blog_service.users.get(db_session, 12345)
    with pytest.raises(NotFoundError):
        blog_service.posts.get(db_session, 12345)
    with pytest.raises(NotFoundError):
        blog_service.comments.get(db_session, 12345)


def test_payload_validation():
    with pytest.raises(ValidationError):
        PostCreate(user_id=1, title="")
    with pytest.raises(ValidationError):
        UserCreate(name="", email="x@example.com")


def test_list_for_user(db_session, blog, ada, grace):
    assert {post.title for post in blog_service.posts.list_for_user(db_session, ada.id)} == {
        "Older post",
        "Future post",
        "Draft post",
    }
    assert {comment.body for comment in blog_service.comments.list_for_user(db_session, grace.id)} == {
        "Published",
        "Draft",
    }


def test_list_users_ordered(db_session, ada, grace):
    assert [user.name for user in blog_service.users.list(db_session, order_dir="desc")] == ["Grace", "Ada"]


def test_latest(db_session, blog, now):
    rows = blog_service.posts.latest(db_session, at=now)

    assert [(row.Post.title, row.user_name, row.comments_count) for row in rows] == [
        ("Newer post", "Grace", 1),
        ("Older post", "Ada", 1),
    ]


def test_latest_with_all_comments_and_later_instant(db_session, blog, now):
    rows = blog_service.posts.latest(
        db_session,
        limit=5,
        published_comments=False,
        at=now + timedelta(days=2),
    )

    assert [(row.Post.title, row.comments_count) for row in rows] == [
        ("Future post", 0),
        ("Newer post", 1),
        ("Older post", 3),
    ]


def test_latest_rejects_negative_limit(db_session):
    with pytest.raises(InvalidModifierError, match="limit must not be negative"):
        blog_service.posts.latest(db_session, limit=-1)
