"""
Import profiles - static column maps for every importable entity kind.

A profile tells the row preparer which header holds the natural key, which
other headers map to which fields and how their cells are converted, which
header (if any) names a referenced record, and how a prepared row is
validated against the entity's own rules.

Usage:
    from cablebook.services.import_profiles import get_profile

    profile = get_profile("cable")
    profile.required_headers     # ['Cable Id', 'Type']
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from cablebook.utils.constants import (
    CABLE_HEADERS,
    CABLE_TYPE_HEADERS,
    MATERIAL_SUPPORT_HEADERS,
    MATERIAL_TRAY_HEADERS,
    MAX_DESCRIPTION_LENGTH,
    MAX_IDENTIFIER_LENGTH,
    MAX_LOCATION_LENGTH,
    MAX_NAME_LENGTH,
    TRAY_HEADERS,
)
from cablebook.utils.normalizers import normalize_date, normalize_number, normalize_text
from cablebook.utils.validators import (
    validate_non_negative_number,
    validate_string_length,
    validate_whole_number,
)

RowValidator = Callable[[str, Dict[str, Any]], List[str]]


class ColumnKind(str, Enum):
    """Conversion applied to a column's cells."""

    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"
    DATE = "date"


def _to_integer(value: Any) -> Any:
    """Convert to int when the number is whole; other numbers pass through for validation."""
    number = normalize_number(value)
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


CONVERTERS: Dict[ColumnKind, Callable[[Any], Any]] = {
    ColumnKind.TEXT: normalize_text,
    ColumnKind.NUMBER: normalize_number,
    ColumnKind.INTEGER: _to_integer,
    ColumnKind.DATE: normalize_date,
}


@dataclass(frozen=True)
class ColumnSpec:
    """One mapped spreadsheet column."""

    header: str
    field: str
    kind: ColumnKind = ColumnKind.TEXT
    required: bool = False

    def convert(self, value: Any) -> Any:
        return CONVERTERS[self.kind](value)


@dataclass(frozen=True)
class ReferenceSpec:
    """
    A column naming a record in another collection.

    Attributes:
        header: Sheet header holding the referenced name
        field: Field receiving the resolved id (e.g., "cable_type_id")
        entity_type: Referenced collection, used in error messages
        required: If True the column must exist and every row must name a record
    """

    header: str
    field: str
    entity_type: str
    required: bool = True


@dataclass(frozen=True)
class ImportProfile:
    """
    Static import configuration for one entity kind.

    Attributes:
        entity_type: Profile name (e.g., "cable")
        key_column: Natural-key column; its converted value is the display key
        columns: Every other mapped column
        reference: Optional foreign-reference column
        validator: Entity rules applied to (display key, sparse fields)
        project_scoped: True when records belong to a project
    """

    entity_type: str
    key_column: ColumnSpec
    columns: Tuple[ColumnSpec, ...]
    reference: Optional[ReferenceSpec] = None
    validator: Optional[RowValidator] = None
    project_scoped: bool = True

    @property
    def tracked_fields(self) -> Tuple[str, ...]:
        """Fields merged on update (the key and reference are handled separately)."""
        return tuple(column.field for column in self.columns)

    @property
    def required_headers(self) -> List[str]:
        """Headers that must exist in the sheet for the import to start."""
        headers = [self.key_column.header]
        if self.reference is not None and self.reference.required:
            headers.append(self.reference.header)
        headers.extend(column.header for column in self.columns if column.required)
        return headers

    def validate(self, key_value: str, fields: Dict[str, Any]) -> List[str]:
        """
        Validate a prepared row.

        Args:
            key_value: Display form of the natural key
            fields: Sparse field map of the row

        Returns:
            List of error messages (empty when the row is valid)
        """
        if self.validator is None:
            return []
        return self.validator(key_value, fields)


def build_row_validator(
    key_label: str,
    key_max_length: int,
    max_lengths: Optional[Dict[str, int]] = None,
    non_negative: Tuple[str, ...] = (),
    whole_numbers: Tuple[str, ...] = (),
) -> RowValidator:
    """
    Build an entity validator from simple field rules.

    Only fields present in the sparse map are checked; absent columns are
    left to the stored values.

    Args:
        key_label: Label of the natural key for messages
        key_max_length: Maximum length of the display key
        max_lengths: Field name -> maximum string length
        non_negative: Numeric fields that must be >= 0
        whole_numbers: Numeric fields that must be integral

    Returns:
        Validator callable
    """
    max_lengths = max_lengths or {}

    def validate(key_value: str, fields: Dict[str, Any]) -> List[str]:
        checks = [validate_string_length(key_value, key_max_length, key_label)]
        for field_name, max_length in max_lengths.items():
            if field_name in fields:
                checks.append(validate_string_length(fields[field_name], max_length, field_name))
        for field_name in non_negative:
            if field_name in fields:
                checks.append(validate_non_negative_number(fields[field_name], field_name))
        for field_name in whole_numbers:
            if field_name in fields:
                checks.append(validate_whole_number(fields[field_name], field_name))
        return [message for is_valid, message in checks if not is_valid]

    return validate


# ============================================================================
# Project-scoped profiles
# ============================================================================

CABLE_PROFILE = ImportProfile(
    entity_type="cable",
    key_column=ColumnSpec(CABLE_HEADERS["cable_id"], "cable_id", required=True),
    columns=(
        ColumnSpec(CABLE_HEADERS["tag"], "tag"),
        ColumnSpec(CABLE_HEADERS["from_location"], "from_location"),
        ColumnSpec(CABLE_HEADERS["to_location"], "to_location"),
        ColumnSpec(CABLE_HEADERS["routing"], "routing"),
        ColumnSpec(CABLE_HEADERS["install_length"], "install_length", ColumnKind.INTEGER),
        ColumnSpec(CABLE_HEADERS["connected_from"], "connected_from", ColumnKind.DATE),
        ColumnSpec(CABLE_HEADERS["connected_to"], "connected_to", ColumnKind.DATE),
        ColumnSpec(CABLE_HEADERS["tested"], "tested", ColumnKind.DATE),
    ),
    reference=ReferenceSpec(CABLE_HEADERS["type"], "cable_type_id", "cable type"),
    validator=build_row_validator(
        "Cable Id",
        MAX_IDENTIFIER_LENGTH,
        max_lengths={
            "tag": MAX_NAME_LENGTH,
            "from_location": MAX_LOCATION_LENGTH,
            "to_location": MAX_LOCATION_LENGTH,
            "routing": MAX_DESCRIPTION_LENGTH,
        },
        non_negative=("install_length",),
        whole_numbers=("install_length",),
    ),
)

CABLE_TYPE_PROFILE = ImportProfile(
    entity_type="cable_type",
    key_column=ColumnSpec(CABLE_TYPE_HEADERS["name"], "name", required=True),
    columns=(
        ColumnSpec(CABLE_TYPE_HEADERS["purpose"], "purpose"),
        ColumnSpec(CABLE_TYPE_HEADERS["diameter"], "diameter_mm", ColumnKind.NUMBER),
        ColumnSpec(CABLE_TYPE_HEADERS["weight"], "weight_kg_per_m", ColumnKind.NUMBER),
    ),
    validator=build_row_validator(
        "Type",
        MAX_NAME_LENGTH,
        max_lengths={"purpose": MAX_NAME_LENGTH},
        non_negative=("diameter_mm", "weight_kg_per_m"),
    ),
)

TRAY_PROFILE = ImportProfile(
    entity_type="tray",
    key_column=ColumnSpec(TRAY_HEADERS["name"], "name", required=True),
    columns=(
        ColumnSpec(TRAY_HEADERS["type"], "tray_type"),
        ColumnSpec(TRAY_HEADERS["purpose"], "purpose"),
        ColumnSpec(TRAY_HEADERS["width"], "width_mm", ColumnKind.NUMBER),
        ColumnSpec(TRAY_HEADERS["height"], "height_mm", ColumnKind.NUMBER),
        ColumnSpec(TRAY_HEADERS["length"], "length_mm", ColumnKind.NUMBER),
    ),
    validator=build_row_validator(
        "Name",
        MAX_NAME_LENGTH,
        max_lengths={"tray_type": MAX_NAME_LENGTH, "purpose": MAX_NAME_LENGTH},
        non_negative=("width_mm", "height_mm", "length_mm"),
    ),
)

# ============================================================================
# Material catalog profiles (global)
# ============================================================================

MATERIAL_TRAY_PROFILE = ImportProfile(
    entity_type="material_tray",
    key_column=ColumnSpec(MATERIAL_TRAY_HEADERS["type"], "tray_type", required=True),
    columns=(
        ColumnSpec(MATERIAL_TRAY_HEADERS["manufacturer"], "manufacturer"),
        ColumnSpec(MATERIAL_TRAY_HEADERS["height"], "height_mm", ColumnKind.NUMBER),
        ColumnSpec(MATERIAL_TRAY_HEADERS["rung_height"], "rung_height_mm", ColumnKind.NUMBER),
        ColumnSpec(MATERIAL_TRAY_HEADERS["width"], "width_mm", ColumnKind.NUMBER),
        ColumnSpec(MATERIAL_TRAY_HEADERS["weight"], "weight_kg_per_m", ColumnKind.NUMBER),
    ),
    reference=ReferenceSpec(
        MATERIAL_TRAY_HEADERS["load_curve"], "load_curve_id", "load curve", required=False
    ),
    validator=build_row_validator(
        "Type",
        MAX_NAME_LENGTH,
        max_lengths={"manufacturer": MAX_NAME_LENGTH},
        non_negative=("height_mm", "rung_height_mm", "width_mm", "weight_kg_per_m"),
    ),
    project_scoped=False,
)

MATERIAL_SUPPORT_PROFILE = ImportProfile(
    entity_type="material_support",
    key_column=ColumnSpec(MATERIAL_SUPPORT_HEADERS["type"], "support_type", required=True),
    columns=(
        ColumnSpec(MATERIAL_SUPPORT_HEADERS["height"], "height_mm", ColumnKind.NUMBER),
        ColumnSpec(MATERIAL_SUPPORT_HEADERS["width"], "width_mm", ColumnKind.NUMBER),
        ColumnSpec(MATERIAL_SUPPORT_HEADERS["length"], "length_mm", ColumnKind.NUMBER),
        ColumnSpec(MATERIAL_SUPPORT_HEADERS["weight"], "weight_kg", ColumnKind.NUMBER),
    ),
    validator=build_row_validator(
        "Type",
        MAX_NAME_LENGTH,
        non_negative=("height_mm", "width_mm", "length_mm", "weight_kg"),
    ),
    project_scoped=False,
)

PROFILES: Dict[str, ImportProfile] = {
    profile.entity_type: profile
    for profile in (
        CABLE_PROFILE,
        CABLE_TYPE_PROFILE,
        TRAY_PROFILE,
        MATERIAL_TRAY_PROFILE,
        MATERIAL_SUPPORT_PROFILE,
    )
}


def get_profile(entity_type: str) -> ImportProfile:
    """
    Look up a profile by entity type.

    Args:
        entity_type: Profile name (e.g., "cable", "material_tray")

    Returns:
        The matching ImportProfile

    Raises:
        ValueError: If no profile has that name
    """
    try:
        return PROFILES[entity_type]
    except KeyError:
        raise ValueError(
            f"Unknown import profile '{entity_type}'. "
            f"Valid profiles: {', '.join(sorted(PROFILES))}"
        ) from None
