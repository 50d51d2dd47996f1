"""
favorites.py

Per-user favorites keyed by Telegram id. Adding a favorite snapshots the
title, poster and rating from TMDB so the profile page needs no provider call.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from trailerfeed.models import Favorite, User
from trailerfeed.services.tmdb_client import TMDBClient
from trailerfeed.utils.timezone import utc_now

logger = logging.getLogger(__name__)


def get_user(db: Session, telegram_id: str) -> Optional[User]:
    return db.query(User).filter(User.telegram_id == telegram_id).first()


def get_or_create_user(
    db: Session,
    telegram_id: str,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    if not telegram_id:
        raise ValueError("telegram_id is required")
    user = get_user(db, telegram_id)
    if user is None:
        user = User(telegram_id=telegram_id, username=username, first_name=first_name, last_name=last_name)
        db.add(user)
        logger.info(f"Created user for telegram id {telegram_id}")
    else:
        user.last_active = utc_now()
        if username:
            user.username = username
        if first_name:
            user.first_name = first_name
        if last_name:
            user.last_name = last_name
    db.commit()
    db.refresh(user)
    return user


def _find(db: Session, user: User, movie_id: int) -> Optional[Favorite]:
    return db.query(Favorite).filter(Favorite.user_id == user.id, Favorite.movie_id == movie_id).first()


async def add_favorite(db: Session, provider: TMDBClient, telegram_id: str, movie_id: int) -> Favorite:
    """Add ``movie_id`` to the user's favorites; adding twice keeps one row.

    ProviderError from the details lookup propagates to the caller.
    """
    user = get_or_create_user(db, telegram_id)
    existing = _find(db, user, movie_id)
    if existing is not None:
        return existing

    movie = await provider.fetch_movie_details(movie_id)
    favorite = Favorite(
        user_id=user.id,
        movie_id=movie.id,
        title=movie.title,
        poster_path=movie.poster_path,
        poster_url=movie.poster_url,
        vote_average=movie.vote_average,
    )
    db.add(favorite)
    db.commit()
    db.refresh(favorite)
    logger.info(f"User {telegram_id} favorited movie {movie_id}")
    return favorite


def remove_favorite(db: Session, telegram_id: str, movie_id: int) -> bool:
    """Returns True when a favorite was removed."""
    user = get_user(db, telegram_id)
    if user is None:
        return False
    favorite = _find(db, user, movie_id)
    if favorite is None:
        return False
    db.delete(favorite)
    db.commit()
    return True


def list_favorites(db: Session, telegram_id: str) -> List[Favorite]:
    user = get_user(db, telegram_id)
    if user is None:
        return []
    return (
        db.query(Favorite)
        .filter(Favorite.user_id == user.id)
        .order_by(Favorite.created_at.asc(), Favorite.id.asc())
        .all()
    )


def is_favorite(db: Session, telegram_id: str, movie_id: int) -> bool:
    user = get_user(db, telegram_id)
    return user is not None and _find(db, user, movie_id) is not None
