import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from trailerfeed.models import Comment

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def list_comments(db: Session, movie_id: int) -> List[Comment]:
    """Comments for a movie, newest first."""
    return (
        db.query(Comment)
        .filter(Comment.movie_id == movie_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )


def add_comment(db: Session, movie_id: int, user_id: str, text: str, rating: int) -> Comment:
    text = (text or "").strip()
    if not user_id:
        raise ValueError("user_id is required")
    if not text:
        raise ValueError("Comment text must not be empty")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValueError(f"Comment text must be at most {MAX_COMMENT_LENGTH} characters")
    if not 1 <= int(rating) <= 10:
        raise ValueError("Rating must be between 1 and 10")

    comment = Comment(movie_id=movie_id, user_id=user_id, text=text, rating=int(rating), likes=[])
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def get_comment(db: Session, comment_id: int) -> Optional[Comment]:
    return db.query(Comment).filter(Comment.id == comment_id).first()


def delete_comment(db: Session, comment_id: int) -> bool:
    comment = get_comment(db, comment_id)
    if comment is None:
        return False
    db.delete(comment)
    db.commit()
    logger.info(f"Deleted comment {comment_id}")
    return True


def toggle_comment_like(db: Session, comment_id: int, user_id: str) -> Optional[Comment]:
    """Add or remove ``user_id`` from the comment's likes; None if the comment does not exist."""
    comment = get_comment(db, comment_id)
    if comment is None:
        return None
    likes = list(comment.likes or [])
    if user_id in likes:
        likes.remove(user_id)
    else:
        likes.append(user_id)
    # Reassign so SQLAlchemy notices the JSON change
    comment.likes = likes
    db.commit()
    db.refresh(comment)
    return comment
