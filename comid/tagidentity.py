"""Identity of a CoMID tag: its id and version."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from .choice import ComidError


@dataclass
class TagIdentity:
    """A tag id (string or UUID) and a tag version, which defaults to 0."""

    tag_id: str | uuid.UUID | None = None
    tag_version: int = 0

    def valid(self) -> None:
        """Raise ComidError if the tag id is empty."""
        if self.tag_id is None or self.tag_id == "":
            raise ComidError("empty tag-id")