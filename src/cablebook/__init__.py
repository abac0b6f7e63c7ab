"""
Cablebook - project-engineering data manager.

The package holds the persisted models (projects, cable schedules, material
catalogs) and the spreadsheet import reconciliation engine that merges
uploaded rows into them.
"""

__version__ = "0.1.0"
