import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from mkdocs.config import config_options as c
from mkdocs.exceptions import PluginError
from mkdocs.plugins import BasePlugin

from plugins.content_utils.indexer import (
    Sampler,
    author_items,
    group_by_author,
    group_by_tag,
    related_items,
    tag_summary,
)
from plugins.content_utils.loader import ContentItem, load_content
from plugins.content_utils.paginator import ALL, paginate, parse_page_size
from plugins.content_utils.routes import (
    DataStore,
    Route,
    RouteTable,
    reset_directory,
    resolve_output_dir,
    write_route_table,
)
from plugins.content_utils.urls import join_url

log = logging.getLogger("mkdocs.plugins.content_blog")

WORDS_PER_MINUTE = 200

# Front matter fields copied into related/author post cards besides the title.
SUMMARY_FIELDS = ("description", "date", "authors")


@dataclass(frozen=True)
class BlogOptions:
    base_page_url: str = "/blog"
    posts_per_page: Any = 10
    author_posts_per_page: Any = ALL
    blog_title: str = "Blog"
    blog_description: str = ""
    related_limit: int = 3


def word_count(content: str) -> int:
    return len(re.findall(r"\b\w+\b", content, flags=re.UNICODE))


def reading_time(content: str) -> int:
    """Estimated minutes to read, never below one."""
    return max(1, math.ceil(word_count(content) / WORDS_PER_MINUTE))


def post_summary(item: ContentItem) -> Dict[str, Any]:
    summary = {"id": item.id, "permalink": item.permalink, "title": item.title}
    for key in SUMMARY_FIELDS:
        value = item.frontmatter.get(key)
        if value is not None:
            summary[key] = value
    summary["reading_time"] = reading_time(item.body)
    return summary


def post_payload(
    item: ContentItem,
    related: Sequence[ContentItem],
    by_author: Sequence[ContentItem],
) -> Dict[str, Any]:
    payload = item.frontmatter.as_dict()
    payload.update(
        {
            "id": item.id,
            "title": item.title,
            "permalink": item.permalink,
            "source": item.rel_path,
            "word_count": word_count(item.body),
            "reading_time": reading_time(item.body),
            "related_items": [post_summary(p) for p in related],
            "author_items": [post_summary(p) for p in by_author],
        }
    )
    return payload


def emit_blog_routes(
    items: Sequence[ContentItem],
    options: BlogOptions,
    store: DataStore,
    sampler: Sampler,
) -> List[Route]:
    """
    Register every blog view and the payloads it needs. Returns the routes in
    emission order; payloads stay pending in ``store`` until flushed.
    """
    table = RouteTable()
    base = join_url(options.base_page_url)
    item_refs: Dict[str, str] = {}

    def items_module(page_items):
        return [item_refs[i.rel_path] for i in page_items]

    # Posts
    for item in items:
        related = related_items(item, items, sampler, options.related_limit)
        by_author = author_items(item, items, sampler, options.related_limit)
        ref = store.create_data(item.rel_path, "post", post_payload(item, related, by_author))
        item_refs[item.rel_path] = ref
        table.add(
            Route(
                path=item.permalink,
                view_name="BlogPostPage",
                data_refs={"content": ref},
                source=item.rel_path,
            )
        )

    tag_groups = group_by_tag(items, base)
    all_tags = tag_summary(tag_groups)
    tags_path = join_url(base, "tags")

    # Paginated list; featured posts are left out of the arithmetic and
    # appended to the first page only.
    featured = [i for i in items if i.frontmatter.is_featured]
    regular = [i for i in items if not i.frontmatter.is_featured]
    tags_ref = None
    if regular or tag_groups:
        tags_ref = store.create_data(tags_path, "tags", all_tags)
    for page in paginate(
        regular, base, options.posts_per_page, options.blog_title, options.blog_description
    ):
        meta = page.metadata
        page_items = list(page.items)
        if meta.permalink == base:
            page_items.extend(featured)
        metadata_ref = store.create_data(
            meta.permalink, "list-metadata", {**meta.as_dict(), "all_tags": all_tags}
        )
        table.add(
            Route(
                path=meta.permalink,
                view_name="BlogListPage",
                data_refs={
                    "items": items_module(page_items),
                    "metadata": metadata_ref,
                    "tags": tags_ref,
                },
                source=f"list page {meta.page_number}",
            )
        )

    # Authors
    for author, group in group_by_author(items, base).items():
        cards = [post_summary(p) for p in group.items]
        for page in paginate(
            group.items,
            group.permalink,
            options.author_posts_per_page,
            f"Posts by {author}",
            f"Blog posts written by {author}",
        ):
            meta = page.metadata
            metadata_ref = store.create_data(
                meta.permalink,
                "author-metadata",
                {**meta.as_dict(), "author": author, "author_items": cards},
            )
            table.add(
                Route(
                    path=meta.permalink,
                    view_name="BlogAuthorPage",
                    data_refs={"items": items_module(page.items), "metadata": metadata_ref},
                    source=f"author '{author}'",
                )
            )

    if not tag_groups:
        log.debug("[content_blog] no tags; skipping tag pages")
        return table.routes

    # Tags
    table.add(
        Route(
            path=tags_path,
            view_name="BlogTagsListPage",
            data_refs={"tags": tags_ref},
            source="tags index",
        )
    )
    for label, group in tag_groups.items():
        tag_ref = store.create_data(
            group.permalink,
            "tag",
            {
                "label": label,
                "permalink": group.permalink,
                "all_tags_path": tags_path,
                "count": group.count,
            },
        )
        for page in paginate(
            group.items,
            group.permalink,
            options.posts_per_page,
            f'Posts tagged "{label}"',
        ):
            meta = page.metadata
            list_metadata_ref = store.create_data(
                meta.permalink, "list-metadata", meta.as_dict()
            )
            table.add(
                Route(
                    path=meta.permalink,
                    view_name="BlogTagsPostsPage",
                    data_refs={
                        "items": items_module(page.items),
                        "tag": tag_ref,
                        "tags": tags_ref,
                        "list_metadata": list_metadata_ref,
                    },
                    source=f"tag '{label}'",
                )
            )

    return table.routes


class ContentBlogPlugin(BasePlugin):
    config_scheme = (
        ("content_dir", c.Type(str, default="blog")),
        ("base_page_url", c.Type(str, default="/blog")),
        ("posts_per_page", c.Type((int, str), default=10)),
        ("author_posts_per_page", c.Type((int, str), default=ALL)),
        ("blog_title", c.Type(str, default="Blog")),
        ("blog_description", c.Type(str, default="")),
        ("output_dir", c.Type(str, default="_content/blog")),
        ("skip_basenames", c.Type(list, default=[])),
        ("related_limit", c.Type(int, default=3)),
        # Unset keeps related posts random on every build
        ("related_seed", c.Optional(c.Type(int))),
        ("max_workers", c.Optional(c.Type(int))),
    )

    def __init__(self):
        super().__init__()
        self.routes: List[Route] = []
        self.options: Optional[BlogOptions] = None

    def build_options(self) -> BlogOptions:
        try:
            posts_per_page = parse_page_size(self.config["posts_per_page"])
            author_posts_per_page = parse_page_size(self.config["author_posts_per_page"])
        except ValueError as e:
            raise PluginError(f"[content_blog] {e}") from e
        return BlogOptions(
            base_page_url=join_url(self.config["base_page_url"]),
            posts_per_page=posts_per_page,
            author_posts_per_page=author_posts_per_page,
            blog_title=self.config["blog_title"],
            blog_description=self.config["blog_description"],
            related_limit=self.config["related_limit"],
        )

    def on_config(self, config, **kwargs):
        self.options = self.build_options()
        resolve_output_dir(config["site_dir"], self.config["output_dir"])
        return config

    # Process will start after site build is complete
    def on_post_build(self, config, **kwargs):
        if self.options is None:
            self.options = self.build_options()

        project_root = Path(config["config_file_path"]).resolve().parent
        content_dir = (project_root / self.config["content_dir"]).resolve()
        output_dir = resolve_output_dir(config["site_dir"], self.config["output_dir"])

        items = load_content(
            content_dir,
            self.options.base_page_url,
            skip_basenames=self.config["skip_basenames"],
        )
        store = DataStore(output_dir / "data")
        sampler = Sampler(seed=self.config["related_seed"])
        self.routes = emit_blog_routes(items, self.options, store, sampler)
        log.info(f"[content_blog] emitted {len(self.routes)} routes for {len(items)} posts")

        reset_directory(output_dir)
        store.flush(self.config["max_workers"])
        write_route_table(self.routes, output_dir / "routes.json")
