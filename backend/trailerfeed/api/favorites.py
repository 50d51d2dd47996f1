"""
favorites.py - Per-user favorites endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from trailerfeed.core.database import get_db
from trailerfeed.dependencies import Services, get_services
from trailerfeed.schemas import FavoriteSchema, UserSchema
from trailerfeed.services import favorites as favorites_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.put("/{telegram_id}/profile", response_model=UserSchema)
def upsert_profile(
    telegram_id: str,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return favorites_service.get_or_create_user(db, telegram_id, username, first_name, last_name)


@router.get("/{telegram_id}/profile", response_model=UserSchema)
def get_profile(telegram_id: str, db: Session = Depends(get_db)):
    user = favorites_service.get_user(db, telegram_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/{telegram_id}", response_model=List[FavoriteSchema])
def list_favorites(telegram_id: str, db: Session = Depends(get_db)):
    return favorites_service.list_favorites(db, telegram_id)


@router.get("/{telegram_id}/{movie_id}")
def is_favorite(telegram_id: str, movie_id: int, db: Session = Depends(get_db)):
    return {"movie_id": movie_id, "favorite": favorites_service.is_favorite(db, telegram_id, movie_id)}


@router.post("/{telegram_id}/{movie_id}", response_model=FavoriteSchema, status_code=201)
async def add_favorite(
    telegram_id: str,
    movie_id: int,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return await favorites_service.add_favorite(db, services.provider, telegram_id, movie_id)


@router.delete("/{telegram_id}/{movie_id}")
def remove_favorite(telegram_id: str, movie_id: int, db: Session = Depends(get_db)):
    if not favorites_service.remove_favorite(db, telegram_id, movie_id):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return {"status": "success", "message": "Favorite removed"}
