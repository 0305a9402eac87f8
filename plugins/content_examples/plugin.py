import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

from mkdocs.config import config_options as c
from mkdocs.plugins import BasePlugin

from plugins.content_utils.loader import ContentItem, load_content
from plugins.content_utils.routes import (
    DataStore,
    Route,
    RouteTable,
    reset_directory,
    resolve_output_dir,
    write_route_table,
)
from plugins.content_utils.urls import join_url

log = logging.getLogger("mkdocs.plugins.content_examples")


def is_published(item: ContentItem) -> bool:
    # Only an explicit `published: false` hides an example from the list
    return item.frontmatter.get("published") is not False


def example_payload(item: ContentItem) -> Dict[str, Any]:
    payload = item.frontmatter.as_dict()
    payload.update(
        {
            "id": item.id,
            "permalink": item.permalink,
            "file_name": item.source_path.name,
            "content": item.body,
        }
    )
    return payload


def emit_example_routes(
    items: Sequence[ContentItem], list_path: str, store: DataStore
) -> List[Route]:
    """
    One page per example plus a list page. Unpublished examples keep their own
    page but are left out of the list.
    """
    table = RouteTable()
    list_path = join_url(list_path)
    published = [example_payload(i) for i in items if is_published(i)]
    list_ref = store.create_data(list_path, "examples-list", published)
    table.add(
        Route(
            path=list_path,
            view_name="ExampleListPage",
            data_refs={"examples": list_ref},
            source="examples list",
        )
    )
    log.debug(f"[content_examples] {len(published)} of {len(items)} examples published")

    for item in items:
        ref = store.create_data(item.rel_path, "example", example_payload(item))
        table.add(
            Route(
                path=item.permalink,
                view_name="ExampleProjectPage",
                data_refs={"example": ref},
                source=item.rel_path,
            )
        )
    return table.routes


class ContentExamplesPlugin(BasePlugin):
    config_scheme = (
        ("content_dir", c.Type(str, default="examples")),
        ("base_page_url", c.Type(str, default="/examples/agents")),
        ("list_path", c.Type(str, default="/examples")),
        ("output_dir", c.Type(str, default="_content/examples")),
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
        content_dir = (project_root / self.config["content_dir"]).resolve()
        output_dir = resolve_output_dir(config["site_dir"], self.config["output_dir"])

        items = load_content(content_dir, join_url(self.config["base_page_url"]))
        store = DataStore(output_dir / "data")
        self.routes = emit_example_routes(items, self.config["list_path"], store)
        log.info(f"[content_examples] emitted {len(self.routes)} routes")

        reset_directory(output_dir)
        store.flush(self.config["max_workers"])
        write_route_table(self.routes, output_dir / "routes.json")
