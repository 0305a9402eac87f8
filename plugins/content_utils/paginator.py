import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar, Union

from plugins.content_utils.urls import join_url

ALL = "ALL"

T = TypeVar("T")

PageSize = Union[int, str]


@dataclass(frozen=True)
class PageMetadata:
    permalink: str
    page_number: int
    items_per_page: int
    total_pages: int
    total_count: int
    previous_page_permalink: Optional[str] = None
    next_page_permalink: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    metadata: Optional[PageMetadata] = None


def parse_page_size(value) -> PageSize:
    """Accept a positive int, a digit string, or "ALL" (any case)."""
    if isinstance(value, bool):
        raise ValueError(f"invalid page size: {value!r}")
    if isinstance(value, int):
        if value < 1:
            raise ValueError(f"page size must be at least 1, got {value}")
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.upper() == ALL:
            return ALL
        if text.isdigit():
            return parse_page_size(int(text))
    raise ValueError(f"page size must be a positive integer or '{ALL}', got {value!r}")


def page_permalink(base_path: str, index: int) -> str:
    """Page index 0 lives at the base path; index k at {base_path}/page/{k + 1}."""
    if index > 0:
        return join_url(base_path, f"page/{index + 1}")
    return join_url(base_path)


def paginate(
    items: Sequence[T],
    base_path: str,
    page_size: PageSize,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> List[Page]:
    page_size = parse_page_size(page_size)
    total_count = len(items)
    if total_count == 0:
        return []
    per_page = total_count if page_size == ALL else page_size
    total_pages = math.ceil(total_count / per_page)

    pages = []
    for index in range(total_pages):
        metadata = PageMetadata(
            permalink=page_permalink(base_path, index),
            page_number=index + 1,
            items_per_page=per_page,
            total_pages=total_pages,
            total_count=total_count,
            previous_page_permalink=(
                page_permalink(base_path, index - 1) if index > 0 else None
            ),
            next_page_permalink=(
                page_permalink(base_path, index + 1)
                if index < total_pages - 1
                else None
            ),
            title=title,
            description=description,
        )
        pages.append(
            Page(
                items=list(items[index * per_page : (index + 1) * per_page]),
                metadata=metadata,
            )
        )
    return pages
