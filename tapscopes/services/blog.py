from datetime import datetime

from sqlalchemy.orm import Session

from tapscopes.errors import NotFoundError
from tapscopes.logging import get_logger
from tapscopes.models.blog import Comment, Post, User
from tapscopes.queries.blog import CommentQuery, PostQuery, UserQuery
from tapscopes.queries.modifiers import DEFAULT_LATEST_LIMIT, LatestPosts, OrderBy, OwnedBy
from tapscopes.schemas.blog import CommentCreate, PostCreate, UserCreate

logger = get_logger(__name__)


def _ensure_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("user_not_found", "User not found")
    return user


def _ensure_post(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if not post:
        raise NotFoundError("post_not_found", "Post not found")
    return post


class Users:
    @staticmethod
    def create(db: Session, payload: UserCreate):
        user = User(**payload.model_dump())
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get(db: Session, user_id: int):
        return _ensure_user(db, user_id)

    @staticmethod
    def list(db: Session, order_by: str = "name", order_dir: str = "asc"):
        return UserQuery(db).order_by(order_by, order_dir).all()


class Posts:
    @staticmethod
    def create(db: Session, payload: PostCreate):
        _ensure_user(db, payload.user_id)
        post = Post(**payload.model_dump())
        db.add(post)
        db.commit()
        db.refresh(post)
        logger.info("Created post %s for user %s", post.id, post.user_id)
        return post

    @staticmethod
    def get(db: Session, post_id: int):
        return _ensure_post(db, post_id)

    @staticmethod
    def list_for_user(db: Session, user_id: int):
        return PostQuery(db).tap(OwnedBy(user_id), OrderBy("created_at")).all()

    @staticmethod
    def latest(
        db: Session,
        limit: int = DEFAULT_LATEST_LIMIT,
        published_comments: bool = True,
        at: datetime | None = None,
    ):
        """Latest published posts as rows of (Post, user_name, comments_count)."""
        modifier = LatestPosts(limit=limit, published_comments=published_comments, at=at)
        return PostQuery(db).tap(modifier).all()


class Comments:
    @staticmethod
    def create(db: Session, payload: CommentCreate):
        _ensure_post(db, payload.post_id)
        _ensure_user(db, payload.user_id)
        comment = Comment(**payload.model_dump())
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment

    @staticmethod
    def get(db: Session, comment_id: int):
        comment = db.get(Comment, comment_id)
        if not comment:
            raise NotFoundError("comment_not_found", "Comment not found")
        return comment

    @staticmethod
    def list_for_user(db: Session, user_id: int):
        return CommentQuery(db).tap(OwnedBy(user_id), OrderBy("created_at")).all()

    @staticmethod
    def list_for_post(db: Session, post_id: int):
        return CommentQuery(db).by_post(post_id).order_by("created_at").all()


users = Users()
posts = Posts()
comments = Comments()
