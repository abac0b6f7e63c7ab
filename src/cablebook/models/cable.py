"""
Cable model for project cable schedules.

Each cable is identified within its project by its cable id
(case-insensitive) and references exactly one cable type.
"""

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from cablebook.utils.normalizers import normalize_key

from .base import BaseModel


class Cable(BaseModel):
    """
    Cable model representing one line of a project cable schedule.

    Attributes:
        project_id: Foreign key to Project
        cable_id: Cable identifier as written on the schedule (e.g., "C-101")
        cable_id_key: Normalized cable id used for matching
        tag: Optional tag
        cable_type_id: Foreign key to CableType (required)
        from_location: Optional start location
        to_location: Optional end location
        routing: Optional routing description
        install_length: Installed length in whole metres
        connected_from: Date the start end was connected
        connected_to: Date the far end was connected
        tested: Date the cable was tested

    Relationships:
        project: Many-to-One with Project
        cable_type: Many-to-One with CableType
    """

    __tablename__ = "cables"

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    cable_id = Column(String(100), nullable=False)
    cable_id_key = Column(String(100), nullable=False)
    tag = Column(String(255), nullable=True)
    cable_type_id = Column(
        Integer, ForeignKey("cable_types.id", ondelete="CASCADE"), nullable=False
    )
    from_location = Column(String(255), nullable=True)
    to_location = Column(String(255), nullable=True)
    routing = Column(String(500), nullable=True)
    install_length = Column(Integer, nullable=True)
    connected_from = Column(Date, nullable=True)
    connected_to = Column(Date, nullable=True)
    tested = Column(Date, nullable=True)

    project = relationship("Project", back_populates="cables")
    cable_type = relationship("CableType", back_populates="cables")

    __table_args__ = (
        UniqueConstraint("project_id", "cable_id_key", name="uq_cables_project_cable_id"),
        Index("idx_cables_project", "project_id"),
        Index("idx_cables_cable_type", "cable_type_id"),
    )

    @validates("cable_id")
    def _sync_cable_id_key(self, _key, value):
        self.cable_id_key = normalize_key(value)
        return value

    def __repr__(self) -> str:
        """String representation of cable."""
        return f"Cable(id={self.id}, cable_id='{self.cable_id}')"

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert cable to dictionary, including the referenced type name.

        Args:
            include_relationships: If True, include related objects

        Returns:
            Dictionary representation
        """
        result = super().to_dict(include_relationships)
        result["type_name"] = self.cable_type.name if self.cable_type else None
        return result
