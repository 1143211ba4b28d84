"""
The in-memory pin draft and its privacy rules.

A PinDraft is owned by one creation session and mutated only through
its setters. The uploader never sees the draft itself, only an
immutable PinDraftSnapshot taken at submission time.

Visibility rules:
- the visibility set is never empty (defaults to public)
- public excludes every other option and clears the social circles
- selecting social or private removes public
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Mapping, Optional, Set, Tuple

from ..geocoding.geocoding_models import Coordinate
from ..media.media_models import MediaSnapshot


class Visibility(str, Enum):
    PUBLIC = "public"
    SOCIAL = "social"
    PRIVATE = "private"


# Stable order for payloads and display
VISIBILITY_ORDER = (Visibility.PUBLIC, Visibility.SOCIAL, Visibility.PRIVATE)


def _ordered(options) -> List[str]:
    return [option.value for option in VISIBILITY_ORDER if option in options]


@dataclass(frozen=True)
class PinDraftSnapshot:
    """Read-only copy of a draft handed to the uploader."""
    title: str
    description: str
    location_query: str
    coordinate: Optional[Coordinate]
    visibility: FrozenSet[Visibility]
    social_circle_ids: Tuple[str, ...]
    media: MediaSnapshot

    @property
    def visibility_values(self) -> List[str]:
        return _ordered(self.visibility)


@dataclass
class PinDraft:
    """Mutable draft of the pin being authored."""
    title: str = ""
    description: str = ""
    location_query: str = ""
    coordinate: Optional[Coordinate] = None
    visibility: Set[Visibility] = field(default_factory=lambda: {Visibility.PUBLIC})
    social_circle_ids: List[str] = field(default_factory=list)
    media: MediaSnapshot = field(default_factory=MediaSnapshot)

    # ---- content ----------------------------------------------------

    def set_title(self, title: str) -> None:
        self.title = title

    def set_description(self, description: str) -> None:
        self.description = description

    def set_location_query(self, text: str) -> None:
        self.location_query = text

    def set_coordinate(self, coordinate: Optional[Coordinate]) -> None:
        self.coordinate = coordinate

    def set_media(self, media: MediaSnapshot) -> None:
        self.media = media

    # ---- privacy ----------------------------------------------------

    def select_visibility(self, option: Visibility) -> None:
        """Add an option, enforcing mutual exclusion with public."""
        option = Visibility(option)
        if option == Visibility.PUBLIC:
            self.visibility = {Visibility.PUBLIC}
            self.social_circle_ids = []
            return

        self.visibility = (self.visibility - {Visibility.PUBLIC}) | {option}

    def toggle_visibility(self, option: Visibility) -> None:
        """
        Flip one option.

        Deselecting is refused for the last selected option. Deselecting
        social also clears the selected circles.
        """
        option = Visibility(option)
        if option not in self.visibility:
            self.select_visibility(option)
            return

        if len(self.visibility) == 1:
            return

        self.visibility = self.visibility - {option}
        if option == Visibility.SOCIAL:
            self.social_circle_ids = []

    def is_visibility_selected(self, option: Visibility) -> bool:
        return Visibility(option) in self.visibility

    def toggle_social_circle(self, circle_id: str) -> None:
        if circle_id in self.social_circle_ids:
            self.social_circle_ids = [cid for cid in self.social_circle_ids if cid != circle_id]
        else:
            self.social_circle_ids = self.social_circle_ids + [circle_id]

    def visibility_description(self, circle_names: Mapping[str, str] = None) -> str:
        """
        Sentence describing who will see the pin.

        Args:
            circle_names: Optional circle id -> display name lookup
        """
        if Visibility.PUBLIC in self.visibility:
            return "This memory will be visible to everyone on the map."
        if Visibility.PRIVATE in self.visibility:
            return "This memory will only be visible to you."
        if Visibility.SOCIAL in self.visibility:
            if self.social_circle_ids:
                names = circle_names or {}
                joined = ", ".join(names.get(cid, cid) for cid in self.social_circle_ids)
                return f"This memory will be visible to members of: {joined}"
            return "Select social circles to share this memory with."
        return "Please select a visibility option."

    # ---- snapshots --------------------------------------------------

    def snapshot(self) -> PinDraftSnapshot:
        return PinDraftSnapshot(
            title=self.title,
            description=self.description,
            location_query=self.location_query,
            coordinate=self.coordinate,
            visibility=frozenset(self.visibility),
            social_circle_ids=tuple(self.social_circle_ids),
            media=self.media,
        )

    def reset(self) -> None:
        """Back to the empty draft a new creation flow starts with."""
        self.title = ""
        self.description = ""
        self.location_query = ""
        self.coordinate = None
        self.visibility = {Visibility.PUBLIC}
        self.social_circle_ids = []
        self.media = MediaSnapshot()
