"""
comments.py

API endpoints for movie comments.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging

from trailerfeed.core.database import get_db
from trailerfeed.schemas import CommentCreate, CommentLike, CommentSchema
from trailerfeed.services import comments as comments_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{movie_id}", response_model=List[CommentSchema])
def get_comments(movie_id: int, db: Session = Depends(get_db)):
    """Comments for a movie, newest first."""
    return comments_service.list_comments(db, movie_id)


@router.post("", response_model=CommentSchema, status_code=201)
def create_comment(payload: CommentCreate, db: Session = Depends(get_db)):
    try:
        return comments_service.add_comment(db, payload.movie_id, payload.user_id, payload.text, payload.rating)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{comment_id}")
def delete_comment(comment_id: int, db: Session = Depends(get_db)):
    if not comments_service.delete_comment(db, comment_id):
        raise HTTPException(status_code=404, detail="Comment not found")
    return {"status": "success", "message": "Comment deleted"}


@router.post("/{comment_id}/like", response_model=CommentSchema)
def like_comment(comment_id: int, payload: CommentLike, db: Session = Depends(get_db)):
    comment = comments_service.toggle_comment_like(db, comment_id, payload.user_id)
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment
