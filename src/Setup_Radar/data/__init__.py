"""Persistence layer: SQLite database management and the signal repository."""

from Setup_Radar.data.database import Database
from Setup_Radar.data.repository import Repository

__all__ = ["Database", "Repository"]
