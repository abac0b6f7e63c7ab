"""
MaterialLoadCurve and MaterialLoadCurvePoint models.

A load curve is an ordered point set (span in metres against permissible
load in kN/m). Points are not individually addressable: an import replaces
the whole set, so point_order is always contiguous from 1 and follows
ascending span.
"""

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from cablebook.utils.normalizers import normalize_key

from .base import BaseModel


class MaterialLoadCurve(BaseModel):
    """
    MaterialLoadCurve model representing a tray load rating curve.

    Attributes:
        name: Curve name, unique regardless of case
        name_key: Normalized name used for matching
        description: Optional description text

    Relationships:
        points: One-to-Many with MaterialLoadCurvePoint, ordered by point_order
        trays: One-to-Many with MaterialTray
    """

    __tablename__ = "material_load_curves"

    name = Column(String(255), nullable=False)
    name_key = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    points = relationship(
        "MaterialLoadCurvePoint",
        back_populates="load_curve",
        cascade="all",
        order_by="MaterialLoadCurvePoint.point_order",
        lazy="select",
    )
    trays = relationship("MaterialTray", back_populates="load_curve", lazy="select")

    __table_args__ = (
        UniqueConstraint("name_key", name="uq_material_load_curves_name"),
    )

    @validates("name")
    def _sync_name_key(self, _key, value):
        self.name_key = normalize_key(value)
        return value

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert load curve to dictionary.

        Args:
            include_relationships: If True, include the ordered points

        Returns:
            Dictionary representation
        """
        result = super().to_dict(False)
        if include_relationships:
            result["points"] = [point.to_dict() for point in self.points]
        return result


class MaterialLoadCurvePoint(BaseModel):
    """
    One point of a load curve.

    Attributes:
        load_curve_id: Foreign key to MaterialLoadCurve
        point_order: 1-based position within the curve
        span_m: Support span in metres
        load_kn_per_m: Permissible load in kN per metre
    """

    __tablename__ = "material_load_curve_points"

    load_curve_id = Column(
        Integer, ForeignKey("material_load_curves.id", ondelete="CASCADE"), nullable=False
    )
    point_order = Column(Integer, nullable=False)
    span_m = Column(Float, nullable=False)
    load_kn_per_m = Column(Float, nullable=False)

    load_curve = relationship("MaterialLoadCurve", back_populates="points")

    __table_args__ = (
        UniqueConstraint("load_curve_id", "point_order", name="uq_load_curve_point_order"),
        Index("idx_load_curve_points_curve", "load_curve_id"),
    )

    def __repr__(self) -> str:
        """String representation of load curve point."""
        return (
            f"MaterialLoadCurvePoint(order={self.point_order}, "
            f"span_m={self.span_m}, load_kn_per_m={self.load_kn_per_m})"
        )
