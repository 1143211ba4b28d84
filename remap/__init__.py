"""
ReMap pin-creation pipeline.

Client-side session components for authoring a memory pin:
geocoding the location, capturing media, and uploading the draft.
"""

__version__ = "1.0.0"
