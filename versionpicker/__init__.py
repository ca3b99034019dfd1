"""
VersionPicker: composite identity and many-to-many selection for versioned rows.
"""

__version__ = "0.1.0"
