import json

import pytest
from mkdocs.exceptions import PluginError

from plugins.content_blog.plugin import (
    BlogOptions,
    ContentBlogPlugin,
    emit_blog_routes,
    reading_time,
)
from plugins.content_utils.errors import RouteCollisionError
from plugins.content_utils.indexer import Sampler
from plugins.content_utils.loader import load_content
from plugins.content_utils.routes import DataStore


POSTS = {
    "first.md": "---\ntitle: First\ntags: [AI, Agents]\nauthors: jane_doe\ndate: 2024-01-01\n---\nOne two three.",
    "second.md": "---\ntitle: Second\ntags: [AI]\nauthors: jane_doe\n---\nBody",
    "third.md": "---\ntitle: Third\ntags: [C++ Tips!]\nauthors: joe\n---\nBody",
    "fourth.md": "---\ntitle: Fourth\nslug: the-fourth\n---\nBody",
    "featured.md": "---\ntitle: Featured\nis_featured: true\ntags: [AI]\nauthors: jane_doe\n---\nBody",
}


@pytest.fixture
def content_dir(tmp_path):
    blog = tmp_path / "blog"
    blog.mkdir()
    for name, text in POSTS.items():
        (blog / name).write_text(text, encoding="utf-8")
    return blog


def make_plugin(**options):
    plugin = ContentBlogPlugin()
    errors, warnings = plugin.load_config(options)
    assert errors == []
    return plugin


def run_build(plugin, tmp_path):
    config = {
        "config_file_path": str(tmp_path / "mkdocs.yml"),
        "site_dir": str(tmp_path / "site"),
    }
    plugin.on_config(config)
    plugin.on_post_build(config)
    return tmp_path / "site" / plugin.config["output_dir"]


class TestEmitBlogRoutes:
    def emit(self, content_dir, **overrides):
        items = load_content(content_dir, "/blog")
        store = DataStore(content_dir.parent / "out")
        options = BlogOptions(**{"posts_per_page": 2, **overrides})
        routes = emit_blog_routes(items, options, store, Sampler(seed=0))
        return items, store, {r.path: r for r in routes}

    def test_route_paths(self, content_dir):
        _, _, routes = self.emit(content_dir)
        assert set(routes) == {
            "/blog/first",
            "/blog/second",
            "/blog/third",
            "/blog/the-fourth",
            "/blog/featured",
            "/blog",
            "/blog/page/2",
            "/blog/author/jane-doe",
            "/blog/author/joe",
            "/blog/tags",
            "/blog/tags/ai",
            "/blog/tags/ai/page/2",
            "/blog/tags/agents",
            "/blog/tags/c-tips",
        }
        assert routes["/blog/first"].view_name == "BlogPostPage"
        assert routes["/blog/page/2"].view_name == "BlogListPage"
        assert routes["/blog/author/joe"].view_name == "BlogAuthorPage"
        assert routes["/blog/tags"].view_name == "BlogTagsListPage"
        assert routes["/blog/tags/c-tips"].view_name == "BlogTagsPostsPage"

    def test_featured_only_on_root_page(self, content_dir):
        """4 regular posts at 2 per page; the featured post is appended to page 1."""
        _, store, routes = self.emit(content_dir)
        featured_ref = routes["/blog/featured"].data_refs["content"]
        root_items = routes["/blog"].data_refs["items"]
        assert len(root_items) == 3
        assert root_items[-1] == featured_ref
        assert featured_ref not in routes["/blog/page/2"].data_refs["items"]

        metadata = store._pending[routes["/blog"].data_refs["metadata"]]
        assert metadata["total_count"] == 4
        assert metadata["total_pages"] == 2
        assert metadata["next_page_permalink"] == "/blog/page/2"

    def test_item_payload_reused_across_lists(self, content_dir):
        _, store, routes = self.emit(content_dir)
        first_ref = routes["/blog/first"].data_refs["content"]
        assert first_ref in routes["/blog"].data_refs["items"]
        assert first_ref in routes["/blog/tags/agents"].data_refs["items"]
        assert first_ref in routes["/blog/author/jane-doe"].data_refs["items"]
        # list pages share one tags payload
        assert routes["/blog"].data_refs["tags"] == routes["/blog/tags"].data_refs["tags"]

    def test_post_payload(self, content_dir):
        _, store, routes = self.emit(content_dir)
        payload = store._pending[routes["/blog/first"].data_refs["content"]]
        assert payload["title"] == "First"
        assert payload["permalink"] == "/blog/first"
        assert payload["source"] == "first.md"
        assert payload["word_count"] == 3
        related = {p["permalink"] for p in payload["related_items"]}
        assert related == {"/blog/second", "/blog/featured"}
        by_author = {p["permalink"] for p in payload["author_items"]}
        assert by_author == {"/blog/second", "/blog/featured"}
        assert "/blog/first" not in related | by_author

    def test_post_route_refs_only_payloads(self, content_dir):
        _, store, routes = self.emit(content_dir)
        ref = routes["/blog/first"].data_refs["content"]
        assert routes["/blog/first"].data_refs == {"content": ref}
        assert store._pending[ref]["source"] == "first.md"

    def test_author_pages_paginate(self, content_dir):
        _, _, routes = self.emit(content_dir, author_posts_per_page=2)
        assert "/blog/author/jane-doe/page/2" in routes

    def test_no_tags_no_tag_routes(self, tmp_path):
        (tmp_path / "only.md").write_text("untagged", encoding="utf-8")
        items = load_content(tmp_path, "/blog")
        routes = emit_blog_routes(items, BlogOptions(), DataStore(tmp_path), Sampler())
        assert [r.path for r in routes] == ["/blog/only", "/blog"]

    def test_duplicate_slugs_collide(self, tmp_path):
        (tmp_path / "a.md").write_text("---\nslug: same\n---\nA", encoding="utf-8")
        (tmp_path / "b.md").write_text("---\nslug: same\n---\nB", encoding="utf-8")
        items = load_content(tmp_path, "/blog")
        with pytest.raises(RouteCollisionError) as exc_info:
            emit_blog_routes(items, BlogOptions(), DataStore(tmp_path), Sampler())
        assert exc_info.value.path == "/blog/same"
        assert {exc_info.value.first_source, exc_info.value.second_source} == {"a.md", "b.md"}

    def test_slug_colliding_with_tags_index(self, tmp_path):
        (tmp_path / "a.md").write_text("---\nslug: tags\ntags: [x]\n---\nA", encoding="utf-8")
        items = load_content(tmp_path, "/blog")
        with pytest.raises(RouteCollisionError):
            emit_blog_routes(items, BlogOptions(), DataStore(tmp_path), Sampler())


class TestContentBlogPlugin:
    def test_build_writes_routes_and_data(self, tmp_path, content_dir):
        plugin = make_plugin(posts_per_page=2, related_seed=3)
        out_dir = run_build(plugin, tmp_path)

        routes = json.loads((out_dir / "routes.json").read_text(encoding="utf-8"))
        paths = [r["path"] for r in routes]
        assert len(paths) == len(set(paths))
        assert "/blog/page/2" in paths

        for route in routes:
            for ref in route["data_refs"].values():
                refs = ref if isinstance(ref, list) else [ref]
                for name in refs:
                    assert (out_dir / "data" / name).is_file()

    def test_rebuild_removes_stale_files(self, tmp_path, content_dir):
        plugin = make_plugin()
        out_dir = run_build(plugin, tmp_path)
        (out_dir / "data" / "stale.json").write_text("{}")
        run_build(plugin, tmp_path)
        assert not (out_dir / "data" / "stale.json").exists()

    def test_invalid_posts_per_page(self, tmp_path):
        plugin = make_plugin(posts_per_page="lots")
        with pytest.raises(PluginError):
            plugin.on_config({"site_dir": str(tmp_path / "site")})

    def test_datetime_front_matter_written_as_iso(self, tmp_path):
        blog = tmp_path / "blog"
        blog.mkdir()
        (blog / "timed.md").write_text(
            "---\ntitle: Timed\ndate: 2024-01-01T10:00:00\n---\nBody", encoding="utf-8"
        )
        out_dir = run_build(make_plugin(), tmp_path)
        routes = json.loads((out_dir / "routes.json").read_text(encoding="utf-8"))
        post = next(r for r in routes if r["path"] == "/blog/timed")
        payload = json.loads(
            (out_dir / "data" / post["data_refs"]["content"]).read_text(encoding="utf-8")
        )
        assert payload["date"] == "2024-01-01T10:00:00"

    @pytest.mark.parametrize("output_dir", ["", "  ", ".", "../outside", "_content/../.."])
    def test_output_dir_must_stay_below_site_dir(self, tmp_path, output_dir):
        plugin = make_plugin(output_dir=output_dir)
        with pytest.raises(PluginError):
            plugin.on_config({"site_dir": str(tmp_path / "site")})

    def test_absolute_output_dir_rejected(self, tmp_path):
        plugin = make_plugin(output_dir=str(tmp_path / "elsewhere"))
        with pytest.raises(PluginError):
            plugin.on_config({"site_dir": str(tmp_path / "site")})

    def test_rejected_output_dir_leaves_site_untouched(self, tmp_path, content_dir):
        site = tmp_path / "site"
        site.mkdir()
        (site / "index.html").write_text("<html></html>", encoding="utf-8")
        plugin = make_plugin(output_dir="")
        with pytest.raises(PluginError):
            run_build(plugin, tmp_path)
        assert (site / "index.html").is_file()

    def test_missing_content_dir_fails_build(self, tmp_path):
        plugin = make_plugin(content_dir="nowhere")
        with pytest.raises(PluginError):
            run_build(plugin, tmp_path)


def test_reading_time_minimum():
    assert reading_time("") == 1
    assert reading_time("word " * 401) == 3
