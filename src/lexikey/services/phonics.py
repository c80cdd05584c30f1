"""Mapping between generic phonics groups and catalog sub-tags.

Catalog items carry specific tags such as ``cvc-short-a`` or ``end-blends-nd``
while learners are tracked against the generic groups of ``PhonicsGroup``.
A tag belongs to a group when it starts with one of the group's prefixes
or equals the group's own value.
Tags that match no prefix (``glued-*``, ``soft-*``, ``trigraph-*``,
``welded-*``, ``suffix-*``...) belong to no group.
"""
from typing import Dict, Iterable, Optional, Set, Tuple

from lexikey.models.engine_models import PhonicsGroup


PHONICS_GROUP_PREFIXES: Dict[PhonicsGroup, Tuple[str, ...]] = {
    PhonicsGroup.CVC: ("cvc-",),
    PhonicsGroup.SILENT_E: ("silent-",),  # silent-e, silent-gh, silent-kn, silent-wr
    PhonicsGroup.DIGRAPHS: ("digraph-",),
    PhonicsGroup.BLENDS: ("blends-", "end-blends-"),
    PhonicsGroup.VOWEL_TEAMS: ("vowel-team-",),
    PhonicsGroup.R_CONTROLLED: ("r-controlled-",),
    PhonicsGroup.DIPHTHONGS: ("diphthong-",),
    PhonicsGroup.REVERSALS: ("reversal-",),
    PhonicsGroup.MULTI_SYLLABLE: ("multi-syllable",),
}


def _in_group(tag: str, group: PhonicsGroup) -> bool:
    # Generic tags such as "digraphs" (placement pool) match their own group
    if tag == group.value:
        return True
    return any(tag.startswith(prefix) for prefix in PHONICS_GROUP_PREFIXES.get(group, ()))


def matches_group(tag: str, group: PhonicsGroup) -> bool:
    """Check whether a catalog tag belongs to a generic group."""
    return _in_group(tag, PhonicsGroup(group))


def matches_any_group(tag: str, groups: Iterable[PhonicsGroup]) -> bool:
    """Check whether a catalog tag belongs to any of the given groups."""
    return any(matches_group(tag, group) for group in groups)


def to_generic_group(tag: str) -> Optional[PhonicsGroup]:
    """Map a catalog tag to its generic group, or None if it has none."""
    for group in PHONICS_GROUP_PREFIXES:
        if _in_group(tag, group):
            return group
    return None


def generic_groups(tags: Iterable[str]) -> Set[PhonicsGroup]:
    """Collect the generic groups of several catalog tags."""
    groups = set()
    for tag in tags:
        group = to_generic_group(tag)
        if group is not None:
            groups.add(group)
    return groups
