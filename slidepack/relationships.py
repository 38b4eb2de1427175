"""
slidepack - Relationship manager
Relationship ids per part and media part names per package
"""

import logging
import re
from typing import Iterable, List, NamedTuple

from pptx.opc.packuri import PackURI

logger = logging.getLogger(__name__)

_RID_PATTERN = re.compile(r'^rId(\d+)$')
_MEDIA_PATTERN = re.compile(r'^/?ppt/media/image(\d+)\.[^/]+$', re.IGNORECASE)


class Relationship(NamedTuple):
    rId: str
    reltype: str
    target: str
    is_external: bool = False


class RelationshipRegistry:
    """
    Relationship ids for one part (a slide or the presentation).

    Ids have the form rIdN with N starting at 1 and only ever increasing;
    an id is never handed out twice within the part.
    """

    def __init__(self, partname: str, existing_ids: Iterable[str] = ()):
        self.partname = PackURI(partname)
        self._relationships: List[Relationship] = []
        self._next = 1
        self.reserve(existing_ids)

    def reserve(self, rIds: Iterable[str]) -> None:
        """Mark ids already used by the part so new ids continue after them"""
        for rId in rIds:
            match = _RID_PATTERN.match(rId or "")
            if match:
                self._next = max(self._next, int(match.group(1)) + 1)

    def register(self, reltype: str, target: str, is_external: bool = False) -> str:
        """
        Register a relationship from this part

        Args:
            reltype: Relationship type URI
            target: Target partname (absolute) or external URL
            is_external: True for targets outside the package

        Returns:
            The new relationship id
        """
        rId = f"rId{self._next}"
        self._next += 1
        if not is_external:
            target = PackURI(target).relative_ref(self.partname.baseURI)
        self._relationships.append(Relationship(rId, reltype, target, is_external))
        logger.debug(f"{self.partname}: {rId} -> {target}")
        return rId

    @property
    def relationships(self) -> List[Relationship]:
        """Relationships in registration order"""
        return list(self._relationships)

    def __len__(self):
        return len(self._relationships)


class MediaRegistry:
    """
    Media part names shared by the whole package (image1, image2, ...).

    Every registration yields a new name, even for a source seen before.
    """

    def __init__(self, existing_partnames: Iterable[str] = ()):
        self._next = 1
        for name in existing_partnames:
            match = _MEDIA_PATTERN.match(name)
            if match:
                self._next = max(self._next, int(match.group(1)) + 1)

    def next_partname(self, ext: str) -> PackURI:
        partname = PackURI(f"/ppt/media/image{self._next}.{ext}")
        self._next += 1
        return partname
