import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

from mkdocs.config import config_options as c
from mkdocs.plugins import BasePlugin

from plugins.content_utils.indexer import Sampler, group_by_field, similar_items
from plugins.content_utils.loader import ContentItem, load_json_entries
from plugins.content_utils.routes import (
    DataStore,
    Route,
    RouteTable,
    reset_directory,
    resolve_output_dir,
    write_route_table,
)
from plugins.content_utils.urls import join_url

log = logging.getLogger("mkdocs.plugins.content_mcp")

CARD_FIELDS = (
    "name",
    "title",
    "slug",
    "description",
    "short_description",
    "category",
    "logoKey",
)


def entry_card(item: ContentItem) -> Dict[str, Any]:
    card = {"id": item.id, "permalink": item.permalink}
    for key in CARD_FIELDS:
        value = item.frontmatter.get(key)
        if value is not None:
            card[key] = value
    return card


def emit_mcp_routes(
    items: Sequence[ContentItem],
    base_path: str,
    store: DataStore,
    sampler: Sampler,
    similar_key: str = "category",
    similar_limit: int = 3,
) -> List[Route]:
    table = RouteTable()
    base = join_url(base_path)
    refs: Dict[str, str] = {}

    for item in items:
        similar = similar_items(item, items, similar_key, sampler, similar_limit)
        payload = item.frontmatter.as_dict()
        payload.update(
            {
                "id": item.id,
                "permalink": item.permalink,
                "similar": [entry_card(s) for s in similar],
                "data": item.raw,
            }
        )
        refs[item.rel_path] = store.create_data(item.rel_path, "entry", payload)
        table.add(
            Route(
                path=item.permalink,
                view_name="McpItemPage",
                data_refs={"content": refs[item.rel_path]},
                source=item.rel_path,
            )
        )

    table.add(
        Route(
            path=base,
            view_name="McpListPage",
            data_refs={"items": [refs[i.rel_path] for i in items]},
            source="entry list",
        )
    )

    categories = group_by_field(items, similar_key, join_url(base, "categories"))
    if not categories:
        return table.routes

    categories_path = join_url(base, "categories")
    categories_ref = store.create_data(
        categories_path,
        "categories",
        [
            {"name": name, "count": group.count, "permalink": group.permalink}
            for name, group in categories.items()
        ],
    )
    table.add(
        Route(
            path=categories_path,
            view_name="McpCategoriesListPage",
            data_refs={"categories": categories_ref},
            source="categories index",
        )
    )
    for name, group in categories.items():
        category_ref = store.create_data(
            group.permalink,
            "category",
            {"name": name, "count": group.count, "permalink": group.permalink},
        )
        table.add(
            Route(
                path=group.permalink,
                view_name="McpListPage",
                data_refs={
                    "items": [refs[i.rel_path] for i in group.items],
                    "category": category_ref,
                },
                source=f"category '{name}'",
            )
        )
    return table.routes


class ContentMcpPlugin(BasePlugin):
    config_scheme = (
        ("data_dir", c.Type(str, default="mcp")),
        ("base_page_url", c.Type(str, default="/mcp")),
        ("output_dir", c.Type(str, default="_content/mcp")),
        ("similar_key", c.Type(str, default="category")),
        ("similar_limit", c.Type(int, default=3)),
        ("similar_seed", c.Optional(c.Type(int))),
        ("max_workers", c.Optional(c.Type(int))),
    )

    def __init__(self):
        super().__init__()
        self.routes: List[Route] = []

    def on_config(self, config, **kwargs):
        resolve_output_dir(config["site_dir"], self.config["output_dir"])
        return config

    def on_post_build(self, config, **kwargs):
        project_root = Path(config["config_file_path"]).resolve().parent
        data_dir = (project_root / self.config["data_dir"]).resolve()
        output_dir = resolve_output_dir(config["site_dir"], self.config["output_dir"])

        items = load_json_entries(data_dir, join_url(self.config["base_page_url"]))
        store = DataStore(output_dir / "data")
        self.routes = emit_mcp_routes(
            items,
            self.config["base_page_url"],
            store,
            Sampler(seed=self.config["similar_seed"]),
            similar_key=self.config["similar_key"],
            similar_limit=self.config["similar_limit"],
        )
        log.info(f"[content_mcp] emitted {len(self.routes)} routes for {len(items)} entries")

        reset_directory(output_dir)
        store.flush(self.config["max_workers"])
        write_route_table(self.routes, output_dir / "routes.json")
