"""
Tray model for the cable trays laid out in a project.
"""

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from cablebook.utils.normalizers import normalize_key

from .base import BaseModel


class Tray(BaseModel):
    """
    Tray model representing one cable tray run in a project.

    Attributes:
        project_id: Foreign key to Project
        name: Tray name, unique per project regardless of case
        name_key: Normalized name used for matching
        tray_type: Optional catalog type name
        purpose: Optional purpose
        width_mm / height_mm / length_mm: Dimensions in millimetres
    """

    __tablename__ = "trays"

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    name_key = Column(String(255), nullable=False)
    tray_type = Column(String(255), nullable=True)
    purpose = Column(String(255), nullable=True)
    width_mm = Column(Float, nullable=True)
    height_mm = Column(Float, nullable=True)
    length_mm = Column(Float, nullable=True)

    project = relationship("Project", back_populates="trays")

    __table_args__ = (
        UniqueConstraint("project_id", "name_key", name="uq_trays_project_name"),
        Index("idx_trays_project", "project_id"),
    )

    @validates("name")
    def _sync_name_key(self, _key, value):
        self.name_key = normalize_key(value)
        return value
