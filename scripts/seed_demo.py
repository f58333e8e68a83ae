import argparse
from datetime import UTC, datetime, timedelta

from tapscopes.db import Base, SessionLocal, get_engine
from tapscopes.logging import configure_logging, get_logger
from tapscopes.queries.blog import UserQuery
from tapscopes.schemas.blog import CommentCreate, PostCreate, UserCreate
from tapscopes.services import blog as blog_service

logger = get_logger(__name__)

DEMO_USERS = [
    ("Ada Lovelace", "ada@example.com"),
    ("Grace Hopper", "grace@example.com"),
]


def seed(db) -> int:
    """Create a small blog. Returns the number of posts created."""
    now = datetime.now(UTC)
    authors = []
    for name, email in DEMO_USERS:
        user = UserQuery(db).where("email", email).first()
        if user is None:
            user = blog_service.users.create(db, UserCreate(name=name, email=email))
        authors.append(user)
    created = 0
    for index in range(6):
        author = authors[index % len(authors)]
        # The last post is scheduled for tomorrow and stays hidden.
        published_at = now - timedelta(days=5 - index) if index < 5 else now + timedelta(days=1)
        post = blog_service.posts.create(
            db,
            PostCreate(user_id=author.id, title=f"Post #{index + 1}", published_at=published_at),
        )
        created += 1
        for offset in range(index % 3 + 1):
            commenter = authors[(index + offset + 1) % len(authors)]
            # Every other comment is still a draft.
            comment_published = now - timedelta(hours=offset) if offset % 2 == 0 else None
            blog_service.comments.create(
                db,
                CommentCreate(
                    post_id=post.id,
                    user_id=commenter.id,
                    body=f"Comment {offset + 1} on {post.title}",
                    published_at=comment_published,
                ),
            )
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed a demo blog and print the latest posts.")
    parser.add_argument("--limit", type=int, default=10, help="Number of posts to show.")
    parser.add_argument(
        "--all-comments",
        action="store_true",
        help="Count draft comments too.",
    )
    args = parser.parse_args()

    configure_logging()
    Base.metadata.create_all(get_engine())

    db = SessionLocal()
    try:
        created = seed(db)
        logger.info("Seeded %s posts", created)
        rows = blog_service.posts.latest(
            db,
            limit=args.limit,
            published_comments=not args.all_comments,
        )
        for row in rows:
            print(f"{row.Post.title}: by {row.user_name}, {row.comments_count} comment(s)")
    finally:
        db.close()


if __name__ == "__main__":
    main()
