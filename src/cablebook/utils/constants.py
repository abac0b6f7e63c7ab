"""
Constants for the Cablebook application.

This module defines all system-wide constants including:
- Database file name
- Spreadsheet column headers for every import profile
- Field limits used by row validation
- Load curve point limits
"""

# ============================================================================
# Database
# ============================================================================

DATABASE_FILENAME = "cablebook.db"

# ============================================================================
# Field Limits
# ============================================================================

MAX_NAME_LENGTH = 255
MAX_IDENTIFIER_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500
MAX_LOCATION_LENGTH = 255

# ============================================================================
# Spreadsheet Headers
# ============================================================================

# Cable list (project scope)
CABLE_HEADERS = {
    "cable_id": "Cable Id",
    "tag": "Tag",
    "type": "Type",
    "from_location": "From Location",
    "to_location": "To Location",
    "routing": "Routing",
    "install_length": "Install Length [m]",
    "connected_from": "Connected From",
    "connected_to": "Connected To",
    "tested": "Tested",
}

# Cable types (project scope)
CABLE_TYPE_HEADERS = {
    "name": "Type",
    "purpose": "Purpose",
    "diameter": "Diameter [mm]",
    "weight": "Weight [kg/m]",
}

# Project trays (project scope)
TRAY_HEADERS = {
    "name": "Name",
    "type": "Type",
    "purpose": "Purpose",
    "width": "Width [mm]",
    "height": "Height [mm]",
    "length": "Length [mm]",
}

# Material catalog trays (global)
MATERIAL_TRAY_HEADERS = {
    "type": "Type",
    "manufacturer": "Manufacturer",
    "height": "Height [mm]",
    "rung_height": "Rung Height [mm]",
    "width": "Width [mm]",
    "weight": "Weight [kg/m]",
    "load_curve": "Load Curve",
}

# Material catalog supports (global)
MATERIAL_SUPPORT_HEADERS = {
    "type": "Type",
    "height": "Height [mm]",
    "width": "Width [mm]",
    "length": "Length [mm]",
    "weight": "Weight [kg]",
}

# ============================================================================
# Load Curves
# ============================================================================

# Upper bound on stored points per curve; extra points are truncated
MAX_CURVE_POINTS = 2000

# Fewer points than this cannot be rendered as a chart
MIN_CHART_POINTS = 2

# Positional columns of a load curve sheet
CURVE_SPAN_COLUMN = 0
CURVE_LOAD_COLUMN = 1

# ============================================================================
# Reporting
# ============================================================================

# Skip details shown in the text summary before eliding
SUMMARY_SKIP_DETAIL_LIMIT = 10
