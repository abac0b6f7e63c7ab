"""
CableType model for the per-project cable type catalog.

Cables reference their type by name in imported cable lists, so the
name is unique per project regardless of case.
"""

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from cablebook.utils.normalizers import normalize_key

from .base import BaseModel


class CableType(BaseModel):
    """
    CableType model representing one cable construction used in a project.

    Attributes:
        project_id: Foreign key to Project
        name: Type name as shown in the cable list (e.g., "NYY-J 3x2.5")
        name_key: Normalized name used for matching
        purpose: Optional purpose (e.g., "Power", "Control")
        diameter_mm: Outer diameter in millimetres
        weight_kg_per_m: Weight per metre in kilograms

    Relationships:
        project: Many-to-One with Project
        cables: One-to-Many with Cable
    """

    __tablename__ = "cable_types"

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    name_key = Column(String(255), nullable=False)
    purpose = Column(String(255), nullable=True)
    diameter_mm = Column(Float, nullable=True)
    weight_kg_per_m = Column(Float, nullable=True)

    project = relationship("Project", back_populates="cable_types")
    cables = relationship(
        "Cable", back_populates="cable_type", cascade="all", lazy="select"
    )

    __table_args__ = (
        UniqueConstraint("project_id", "name_key", name="uq_cable_types_project_name"),
        Index("idx_cable_types_project", "project_id"),
    )

    @validates("name")
    def _sync_name_key(self, _key, value):
        self.name_key = normalize_key(value)
        return value

    def __repr__(self) -> str:
        """String representation of cable type."""
        return f"CableType(id={self.id}, name='{self.name}')"
