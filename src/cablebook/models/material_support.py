"""
MaterialSupport model for the reusable support catalog.
"""

from sqlalchemy import Column, Float, String, UniqueConstraint
from sqlalchemy.orm import validates

from cablebook.utils.normalizers import normalize_key

from .base import BaseModel


class MaterialSupport(BaseModel):
    """
    MaterialSupport model representing one support product in the catalog.

    Attributes:
        support_type: Type designation, unique regardless of case
        support_type_key: Normalized type designation used for matching
        height_mm / width_mm / length_mm: Dimensions in millimetres
        weight_kg: Weight of one support in kilograms
    """

    __tablename__ = "material_supports"

    support_type = Column(String(255), nullable=False)
    support_type_key = Column(String(255), nullable=False)
    height_mm = Column(Float, nullable=True)
    width_mm = Column(Float, nullable=True)
    length_mm = Column(Float, nullable=True)
    weight_kg = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("support_type_key", name="uq_material_supports_type"),
    )

    @validates("support_type")
    def _sync_support_type_key(self, _key, value):
        self.support_type_key = normalize_key(value)
        return value

    def __repr__(self) -> str:
        """String representation of material support."""
        return f"MaterialSupport(id={self.id}, support_type='{self.support_type}')"
