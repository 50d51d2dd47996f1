"""
models.py

SQLAlchemy models for User, Favorite and Comment.
"""
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Text, UniqueConstraint, JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from trailerfeed.utils.timezone import utc_now

Base = declarative_base()

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    telegram_id = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    last_active = Column(DateTime, default=utc_now)
    favorites = relationship("Favorite", back_populates="user", cascade="all, delete-orphan")


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "movie_id", name="uq_favorite_user_movie"),)
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Integer, nullable=False)
    # Snapshot of provider data at the time the movie was favorited
    title = Column(String, nullable=False)
    poster_path = Column(String, nullable=True)
    poster_url = Column(String, nullable=True)
    vote_average = Column(Float, default=0.0)
    created_at = Column(DateTime, default=utc_now)
    user = relationship("User", back_populates="favorites")


class Comment(Base):
    __tablename__ = "comments"
    id = Column(Integer, primary_key=True)
    movie_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String, nullable=False)  # telegram handle of the author
    text = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)  # 1..10
    likes = Column(JSON, default=list)  # list of user handles
    created_at = Column(DateTime, default=utc_now, index=True)
