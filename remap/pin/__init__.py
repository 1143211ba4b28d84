"""
Pin draft module for the ReMap pin pipeline.

Main classes:
- PinDraft: Mutable draft with per-field setters and visibility rules
- PinDraftSnapshot: Immutable copy handed to the uploader

The controller that wires geocoding, media capture and upload together
lives in ``remap.pin.pin_controller``.
"""

from .pin_draft import PinDraft, PinDraftSnapshot, Visibility

__all__ = [
    "PinDraft",
    "PinDraftSnapshot",
    "Visibility",
]
