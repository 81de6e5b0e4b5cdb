"""
Database utilities and models.

This package provides:
- SQLAlchemy models for terrain snapshots
- Database connection management
- Save/restore of terrain workbenches
"""

from .connection import Database, db
from .models import Base, TerrainSnapshot, PlacedInstance
from .snapshots import TerrainStore

__all__ = [
    # Connection management
    'Database', 'db',

    # Persistence
    'TerrainStore',

    # Models
    'Base', 'TerrainSnapshot', 'PlacedInstance',
]
