import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from plugins.content_utils.loader import ContentItem
from plugins.content_utils.urls import join_url, slugify

log = logging.getLogger("mkdocs.plugins.content_utils")

RELATED_LIMIT = 3


@dataclass
class TagGroup:
    label: str
    normalized_permalink: str
    permalink: str
    items: List[ContentItem] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)

    def summary(self) -> Dict[str, Any]:
        return {"label": self.label, "permalink": self.permalink, "count": self.count}


@dataclass
class AuthorGroup(TagGroup):
    """Items sharing the same single-valued ``authors`` field."""


class Sampler:
    """
    Draws bounded samples without repeats. Unseeded, every build can surface a
    different selection; pass a seed for reproducible output.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.seed = seed
        self._rng = rng if rng is not None else random.Random(seed)

    def sample(self, candidates: Sequence, k: int) -> list:
        k = max(0, min(k, len(candidates)))
        return self._rng.sample(list(candidates), k)


def _group(items, keys_for, base_path, group_cls, default_slug):
    groups: Dict[str, TagGroup] = {}
    for item in items:
        for key in keys_for(item):
            group = groups.get(key)
            if group is None:
                slug = slugify(key, default=default_slug)
                group = group_cls(
                    label=key,
                    normalized_permalink=slug,
                    permalink=join_url(base_path, slug),
                )
                groups[key] = group
            group.items.append(item)
    return groups


def group_by_tag(items: Sequence[ContentItem], base_path: str) -> Dict[str, TagGroup]:
    """Single pass over items; groups keep first-encounter order."""
    groups = _group(
        items,
        lambda item: item.frontmatter.tags,
        join_url(base_path, "tags"),
        TagGroup,
        "tag",
    )
    log.debug(f"[content_utils] {len(groups)} tag groups")
    return groups


def group_by_author(items: Sequence[ContentItem], base_path: str) -> Dict[str, AuthorGroup]:
    groups = _group(
        items,
        lambda item: [item.frontmatter.authors] if item.frontmatter.authors else [],
        join_url(base_path, "author"),
        AuthorGroup,
        "author",
    )
    log.debug(f"[content_utils] {len(groups)} author groups")
    return groups


def group_by_field(
    items: Sequence[ContentItem], key: str, base_path: str
) -> Dict[str, TagGroup]:
    """Group on any scalar front matter field; items without it are left out."""

    def keys_for(item):
        value = item.frontmatter.get(key)
        if value in (None, ""):
            return []
        return [str(value)]

    return _group(items, keys_for, base_path, TagGroup, key)


def tag_summary(groups: Dict[str, TagGroup]) -> List[Dict[str, Any]]:
    """Tag label, permalink and count, most used first."""
    return sorted(
        (g.summary() for g in groups.values()), key=lambda s: s["count"], reverse=True
    )


def related_items(
    item: ContentItem,
    items: Sequence[ContentItem],
    sampler: Sampler,
    limit: int = RELATED_LIMIT,
) -> List[ContentItem]:
    """Random sample of other items sharing at least one tag with item."""
    tags = set(item.frontmatter.tags)
    if not tags:
        return []
    candidates = [
        other
        for other in items
        if other is not item and tags.intersection(other.frontmatter.tags)
    ]
    return sampler.sample(candidates, limit)


def author_items(
    item: ContentItem,
    items: Sequence[ContentItem],
    sampler: Sampler,
    limit: int = RELATED_LIMIT,
) -> List[ContentItem]:
    author = item.frontmatter.authors
    if not author:
        return []
    candidates = [
        other
        for other in items
        if other is not item and other.frontmatter.authors == author
    ]
    return sampler.sample(candidates, limit)


def similar_items(
    item: ContentItem,
    items: Sequence[ContentItem],
    key: str,
    sampler: Sampler,
    limit: int = RELATED_LIMIT,
) -> List[ContentItem]:
    """
    Items sharing the same ``key`` value. When there are fewer than ``limit``
    of them, the list is topped up with a random pick from the other items.
    """
    others = [other for other in items if other is not item]
    value = item.frontmatter.get(key)
    same = [o for o in others if value is not None and o.frontmatter.get(key) == value]
    if len(same) > limit:
        return sampler.sample(same, limit)
    rest = [o for o in others if not any(o is s for s in same)]
    return same + sampler.sample(rest, limit - len(same))
