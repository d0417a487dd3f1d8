from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, BigInteger, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class TrackConfig(Base):
    __tablename__ = 'tracks'

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False, default='')
    scenery_id = Column(Integer, nullable=True)

    # Official tracks are addressed by track_id, unofficial ones by online_id
    track_id = Column(Integer, nullable=True, index=True)
    online_id = Column(String(100), nullable=True, index=True)
    laps = Column(Integer, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('track_id', 'laps'),
        UniqueConstraint('online_id', 'laps'),
        CheckConstraint('laps IN (1, 3)', name='ck_tracks_laps'),
        CheckConstraint(
            '(track_id IS NULL) <> (online_id IS NULL)',
            name='ck_tracks_single_identity'
        ),
    )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'scenery_id': self.scenery_id,
            'track_id': self.track_id,
            'online_id': self.online_id,
            'laps': self.laps,
            'active': self.active,
        }

    def __repr__(self):
        ident = self.track_id if self.track_id is not None else self.online_id
        return f"<TrackConfig(track='{ident}', laps={self.laps}, active={self.active})>"

class Pilot(Base):
    __tablename__ = 'pilots'

    id = Column(Integer, primary_key=True)
    user_id = Column(BigInteger, unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False, default='')
    country = Column(String(10), nullable=False, default='')
    active = Column(Boolean, default=True, nullable=False)

    # Metadata
    registered_at = Column(DateTime, default=func.now())

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'name': self.name,
            'country': self.country,
            'active': self.active,
        }

    def __repr__(self):
        return f"<Pilot(user_id={self.user_id}, name='{self.name}', active={self.active})>"
