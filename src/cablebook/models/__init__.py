"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .project import Project
from .cable_type import CableType
from .cable import Cable
from .tray import Tray
from .material_load_curve import MaterialLoadCurve, MaterialLoadCurvePoint
from .material_tray import MaterialTray
from .material_support import MaterialSupport

__all__ = [
    "Base",
    "BaseModel",
    # Project scoped
    "Project",
    "CableType",
    "Cable",
    "Tray",
    # Material catalog
    "MaterialLoadCurve",
    "MaterialLoadCurvePoint",
    "MaterialTray",
    "MaterialSupport",
]
