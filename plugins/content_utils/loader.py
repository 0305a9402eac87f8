import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from plugins.content_utils.errors import ContentReadError, MalformedFrontmatterError
from plugins.content_utils.urls import join_url, slugify

log = logging.getLogger("mkdocs.plugins.content_utils")

FM_PATTERN = re.compile(r"^---[ \t]*\n(.*?)^---[ \t]*(?:\n|$)", re.DOTALL | re.MULTILINE)

CONTENT_EXTENSIONS = (".md", ".mdx")

# Keys the pipeline branches on; everything else is passed through untouched.
RECOGNIZED_KEYS = ("id", "slug", "order", "tags", "authors", "is_featured")


@dataclass(frozen=True)
class FrontMatter:
    id: Any = None
    slug: Optional[str] = None
    order: Any = None
    tags: Tuple[str, ...] = ()
    authors: Optional[str] = None
    is_featured: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any], source: str = "") -> "FrontMatter":
        extra = {k: v for k, v in data.items() if k not in RECOGNIZED_KEYS}
        slug = data.get("slug")
        return cls(
            id=data.get("id"),
            slug=str(slug) if slug not in (None, "") else None,
            order=data.get("order"),
            tags=normalize_tags(data.get("tags"), source),
            authors=normalize_author(data.get("authors"), source),
            is_featured=data.get("is_featured") is True,
            extra=extra,
        )

    def get(self, key: str, default=None):
        if key in RECOGNIZED_KEYS:
            value = getattr(self, key)
            return default if value in (None, ()) else value
        return self.extra.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.id is not None:
            out["id"] = self.id
        if self.slug is not None:
            out["slug"] = self.slug
        if self.order is not None:
            out["order"] = self.order
        if self.tags:
            out["tags"] = list(self.tags)
        if self.authors is not None:
            out["authors"] = self.authors
        if self.is_featured:
            out["is_featured"] = True
        out.update(self.extra)
        return out


@dataclass(frozen=True)
class ContentItem:
    id: str
    frontmatter: FrontMatter
    body: str
    permalink: str
    source_path: Path
    rel_path: str
    # Untyped source object for JSON catalogue entries.
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def title(self) -> str:
        return str(self.frontmatter.get("title") or self.id)


def normalize_tags(raw, source: str = "") -> Tuple[str, ...]:
    """Normalize a tags value into an ordered tuple of unique, non-empty strings."""
    if raw is None:
        return ()
    if isinstance(raw, str):
        candidates = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        candidates = raw
    else:
        candidates = [raw]
    seen = []
    for tag in candidates:
        if isinstance(tag, dict):
            # docusaurus-style inline tag objects
            tag = tag.get("label")
        if tag is None:
            continue
        if not isinstance(tag, str):
            log.warning(f"[content_utils] non-string tag {tag!r} in {source}")
        text = str(tag).strip()
        if text and text not in seen:
            seen.append(text)
    return tuple(seen)


def normalize_author(raw, source: str = "") -> Optional[str]:
    """Authors are single-valued; a list keeps its first entry."""
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        if not raw:
            return None
        if len(raw) > 1:
            log.warning(
                f"[content_utils] {source} lists {len(raw)} authors; using '{raw[0]}'"
            )
        raw = raw[0]
    text = str(raw).strip()
    return text or None


def split_front_matter(source_text: str, source: str = ""):
    """
    Return (front_matter_dict, body_text). If no FM, dict={} and body=source_text.
    """
    m = FM_PATTERN.match(source_text)
    if not m:
        return {}, source_text
    try:
        fm = yaml.safe_load(m.group(1))
    except yaml.YAMLError as exc:
        raise MalformedFrontmatterError(source, exc) from exc
    if fm is None:
        fm = {}
    if not isinstance(fm, dict):
        raise MalformedFrontmatterError(
            source, f"expected a mapping, got {type(fm).__name__}"
        )
    return fm, source_text[m.end() :]


def derive_id(rel_path_no_ext: str) -> str:
    route = rel_path_no_ext.replace(os.sep, "/")
    if route.endswith("/index"):
        route = route[: -len("/index")]
    return route.replace("/", "-").lower()


def get_content_files(content_dir: Path, extensions=CONTENT_EXTENSIONS, skip_basenames=()):
    """Collect content files below content_dir, ignoring unrecognized extensions."""
    results = []
    for root, dirs, files in os.walk(content_dir):
        dirs.sort()
        for file in files:
            if file.endswith(tuple(extensions)) and file not in skip_basenames:
                results.append(Path(root) / file)
    return sorted(results)


def numeric_key(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value)
    return None


def order_key(item: ContentItem):
    """Explicit numeric order (or numeric id) first, then relative path."""
    for value in (item.frontmatter.order, item.frontmatter.id):
        key = numeric_key(value)
        if key is not None:
            return (0, key, item.rel_path)
    return (1, 0, item.rel_path)


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ContentReadError(path, exc) from exc


def load_content(
    content_dir,
    base_path: str,
    extensions: Iterable[str] = CONTENT_EXTENSIONS,
    skip_basenames: Iterable[str] = (),
) -> List[ContentItem]:
    """Load every content file below content_dir into an ordered list of ContentItem."""
    content_dir = Path(content_dir)
    if not content_dir.is_dir():
        raise ContentReadError(content_dir, "content directory does not exist")

    items = []
    for path in get_content_files(content_dir, tuple(extensions), tuple(skip_basenames)):
        rel = path.relative_to(content_dir)
        text = read_text(path)
        data, body = split_front_matter(text, str(path))
        fm = FrontMatter.from_mapping(data, str(path))
        derived = derive_id(str(rel.with_suffix("")))
        item_id = str(fm.id) if fm.id is not None else derived
        items.append(
            ContentItem(
                id=item_id,
                frontmatter=fm,
                body=body,
                permalink=join_url(base_path, fm.slug or derived),
                source_path=path,
                rel_path=rel.as_posix(),
            )
        )
        log.debug(f"[content_utils] loaded {rel.as_posix()} FM keys: {list(data.keys())}")

    items.sort(key=order_key)
    log.info(f"[content_utils] loaded {len(items)} content items from {content_dir}")
    return items


def load_json_entries(data_dir, base_path: str) -> List[ContentItem]:
    """
    Load catalogue entries from *.json files. A file holding a list yields one
    entry per element; a file holding an object yields a single entry.
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise ContentReadError(data_dir, "data directory does not exist")

    items = []
    for path in sorted(data_dir.glob("*.json")):
        try:
            data = json.loads(read_text(path))
        except json.JSONDecodeError as exc:
            raise ContentReadError(path, exc) from exc

        if isinstance(data, list):
            entries = data
        elif isinstance(data, dict):
            entries = [data]
        else:
            log.warning(f"[content_utils] ignoring {path.name}: top-level {type(data).__name__}")
            continue

        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                log.warning(f"[content_utils] ignoring non-object entry {index} in {path.name}")
                continue
            fm = FrontMatter.from_mapping(entry, str(path))
            item_id = str(fm.id) if fm.id is not None else f"{path.stem}-{index}"
            name = entry.get("name") or entry.get("title") or item_id
            slug = fm.slug or slugify(name, default=item_id)
            items.append(
                ContentItem(
                    id=item_id,
                    frontmatter=fm,
                    body="",
                    permalink=join_url(base_path, slug),
                    source_path=path,
                    rel_path=f"{path.name}#{index}",
                    raw=dict(entry),
                )
            )

    log.info(f"[content_utils] loaded {len(items)} entries from {data_dir}")
    return items
