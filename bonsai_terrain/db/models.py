"""Database models for terrain snapshots."""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Text
from sqlalchemy.orm import declarative_base, relationship
import uuid
from datetime import datetime

Base = declarative_base()


class TerrainSnapshot(Base):
    """Saved terrain: the seed pair it regenerates from plus its settings."""

    __tablename__ = "terrain_snapshots"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    seed_x = Column(Integer, nullable=False)
    seed_y = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Generation parameters
    config_json = Column(Text)  # JSON blob of generation settings

    instance_count = Column(Integer, default=0)
    progress_json = Column(Text)  # JSON blob of progress counters

    # Relationships
    instances = relationship(
        "PlacedInstance",
        back_populates="snapshot",
        cascade="all, delete-orphan",
        order_by="PlacedInstance.sequence",
    )


class PlacedInstance(Base):
    """One object instance of a saved terrain, in placement order."""

    __tablename__ = "placed_instances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    snapshot_id = Column(String(36), ForeignKey("terrain_snapshots.id"), nullable=False)
    sequence = Column(Integer, nullable=False)

    prototype_index = Column(Integer, nullable=False)
    x = Column(Float, nullable=False)  # normalized
    y = Column(Float, nullable=False)  # elevation
    z = Column(Float, nullable=False)  # normalized
    rotation = Column(Float, default=0.0)
    height_scale = Column(Float, default=1.0)
    width_scale = Column(Float, default=1.0)

    # Relationships
    snapshot = relationship("TerrainSnapshot", back_populates="instances")
