"""Utility modules: configuration, constants, normalizers and validators."""
