from datetime import datetime
from sqlalchemy import (
    CheckConstraint, Column, Integer, Text, Float, ForeignKey, Index,
    DateTime,
)
from sqlalchemy.orm import relationship
from db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, unique=True)
    name = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    horses = relationship("Horse", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    feed_scans = relationship("FeedScan", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)


class Horse(Base):
    __tablename__ = "horses"
    __table_args__ = (
        CheckConstraint("bcs BETWEEN 1 AND 9", name="ck_horses_bcs_range"),
        Index("idx_horses_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    name = Column(Text, nullable=False)
    age = Column(Integer)
    breed = Column(Text)
    weight_lbs = Column(Float)
    primary_use = Column(Text)
    bcs = Column(Integer)  # body condition score, 1-9
    health_flags = Column(Text)  # JSON array
    photo_url = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="horses")
    feed_scans = relationship("FeedScan", back_populates="horse", cascade="all, delete-orphan", passive_deletes=True)


class FeedScan(Base):
    __tablename__ = "feed_scans"
    __table_args__ = (
        Index("idx_feed_scans_horse_scanned", "horse_id", "scanned_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    horse_id = Column(Integer, ForeignKey("horses.id", ondelete="CASCADE"))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    feed_name = Column(Text)
    brand = Column(Text)
    match_score = Column(Integer)
    verdict = Column(Text)
    nutrients = Column(Text)  # JSON object
    warnings = Column(Text)  # JSON array
    positives = Column(Text)  # JSON array
    recommendations = Column(Text)  # JSON array
    feeding_recommendation = Column(Text)
    raw_analysis = Column(Text)  # JSON object, the full model result
    scanned_at = Column(DateTime, default=datetime.utcnow)

    horse = relationship("Horse", back_populates="feed_scans")
    user = relationship("User", back_populates="feed_scans")
