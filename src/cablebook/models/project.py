"""
Project model.

A project owns its cable schedule: cable types, cables and trays are all
scoped to exactly one project.
"""

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Project(BaseModel):
    """
    Project model representing one engineering project.

    Attributes:
        project_number: Unique project number (e.g., "P-2024-017")
        name: Project display name
        customer: Customer name
        manager: Optional project manager
        description: Optional description text

    Relationships:
        cable_types: One-to-Many with CableType (cascade delete)
        cables: One-to-Many with Cable (cascade delete)
        trays: One-to-Many with Tray (cascade delete)
    """

    __tablename__ = "projects"

    project_number = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    customer = Column(String(255), nullable=False)
    manager = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    cable_types = relationship(
        "CableType", back_populates="project", cascade="all", lazy="select"
    )
    cables = relationship(
        "Cable", back_populates="project", cascade="all", lazy="select"
    )
    trays = relationship(
        "Tray", back_populates="project", cascade="all", lazy="select"
    )

    def __repr__(self) -> str:
        """String representation of project."""
        return f"Project(id={self.id}, project_number='{self.project_number}')"
