"""
MaterialTray model for the reusable tray catalog.

The catalog is global (not project scoped). A catalog tray may point at
the load curve that rates it.
"""

from sqlalchemy import Column, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from cablebook.utils.normalizers import normalize_key

from .base import BaseModel


class MaterialTray(BaseModel):
    """
    MaterialTray model representing one tray product in the material catalog.

    Attributes:
        tray_type: Type designation, unique regardless of case
        tray_type_key: Normalized type designation used for matching
        manufacturer: Optional manufacturer
        height_mm: Side height in millimetres
        rung_height_mm: Rung height in millimetres (ladder trays)
        width_mm: Width in millimetres
        weight_kg_per_m: Weight per metre in kilograms
        load_curve_id: Optional foreign key to MaterialLoadCurve

    Relationships:
        load_curve: Many-to-One with MaterialLoadCurve
    """

    __tablename__ = "material_trays"

    tray_type = Column(String(255), nullable=False)
    tray_type_key = Column(String(255), nullable=False)
    manufacturer = Column(String(255), nullable=True)
    height_mm = Column(Float, nullable=True)
    rung_height_mm = Column(Float, nullable=True)
    width_mm = Column(Float, nullable=True)
    weight_kg_per_m = Column(Float, nullable=True)
    load_curve_id = Column(
        Integer, ForeignKey("material_load_curves.id", ondelete="SET NULL"), nullable=True
    )

    load_curve = relationship("MaterialLoadCurve", back_populates="trays")

    __table_args__ = (
        UniqueConstraint("tray_type_key", name="uq_material_trays_type"),
    )

    @validates("tray_type")
    def _sync_tray_type_key(self, _key, value):
        self.tray_type_key = normalize_key(value)
        return value

    def __repr__(self) -> str:
        """String representation of material tray."""
        return f"MaterialTray(id={self.id}, tray_type='{self.tray_type}')"

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert material tray to dictionary, including the load curve name.

        Args:
            include_relationships: If True, include related objects

        Returns:
            Dictionary representation
        """
        result = super().to_dict(include_relationships)
        result["load_curve_name"] = self.load_curve.name if self.load_curve else None
        return result
