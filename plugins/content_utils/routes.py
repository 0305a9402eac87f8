import datetime
import hashlib
import json
import logging
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from mkdocs.exceptions import PluginError

from plugins.content_utils.errors import RouteCollisionError
from plugins.content_utils.urls import slugify

log = logging.getLogger("mkdocs.plugins.content_utils")

# Keeps generated file names well under common filesystem limits.
MAX_NAME_LENGTH = 120


@dataclass(frozen=True)
class Route:
    path: str
    view_name: str
    data_refs: Dict[str, Any] = field(default_factory=dict)
    source: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "view_name": self.view_name,
            "data_refs": self.data_refs,
        }


class RouteTable:
    """Ordered route collection. A path can only be registered once."""

    def __init__(self):
        self._routes: Dict[str, Route] = {}

    def add(self, route: Route) -> Route:
        existing = self._routes.get(route.path)
        if existing is not None:
            raise RouteCollisionError(route.path, existing.source, route.source)
        self._routes[route.path] = route
        log.debug(f"[content_utils] route {route.path} -> {route.view_name}")
        return route

    def __len__(self):
        return len(self._routes)

    def __contains__(self, path):
        return path in self._routes

    @property
    def routes(self) -> List[Route]:
        return list(self._routes.values())


def docu_hash(identity: str, projection: str = "") -> str:
    """
    Stable file name for a payload: readable slug of the identity plus a short
    digest of (identity, projection).
    """
    digest = hashlib.md5(f"{identity}\0{projection}".encode("utf-8")).hexdigest()[:8]
    base = "index" if identity == "/" else slugify(identity, default="data")
    return f"{base[:MAX_NAME_LENGTH]}-{digest}"


def json_default(value):
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


def dump_json(payload) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=json_default)


class DataStore:
    """
    Content-addressed payload store. ``create_data`` only registers a payload
    and returns its ref; ``flush`` writes everything that is pending.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self._refs: Dict[str, str] = {}
        self._pending: Dict[str, Any] = {}
        self.hits = 0

    def create_data(self, identity: str, projection: str, payload) -> str:
        key = f"{identity}\0{projection}"
        ref = self._refs.get(key)
        if ref is not None:
            self.hits += 1
            return ref
        ref = f"{docu_hash(identity, projection)}.json"
        self._refs[key] = ref
        self._pending[ref] = payload
        return ref

    def __len__(self):
        return len(self._refs)

    def _write(self, ref: str, payload) -> Path:
        out_path = self.output_dir / ref
        out_path.write_text(dump_json(payload), encoding="utf-8")
        return out_path

    def flush(self, max_workers: Optional[int] = None) -> List[Path]:
        """Write pending payloads concurrently; each task owns a distinct file."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        pending, self._pending = self._pending, {}
        written: List[Path] = []
        errors = []
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self._write, ref, payload): ref
                for ref, payload in pending.items()
            }
            for future in as_completed(futures):
                try:
                    written.append(future.result())
                except (OSError, TypeError, ValueError) as e:
                    log.error(f"[content_utils] failed to write {futures[future]}: {e}")
                    errors.append(e)
        if errors:
            raise errors[0]
        log.info(
            f"[content_utils] wrote {len(written)} data files to {self.output_dir} "
            f"(reused {self.hits} refs)"
        )
        return sorted(written)


def resolve_output_dir(site_dir, output_dir: str) -> Path:
    """
    Resolve a configured output directory strictly below site_dir. Empty values,
    absolute paths and paths outside site_dir raise PluginError.
    """
    if not output_dir or not output_dir.strip():
        raise PluginError("output_dir must name a directory below site_dir")
    if Path(output_dir).is_absolute():
        raise PluginError(f"output_dir '{output_dir}' must be relative to site_dir")
    site_path = Path(site_dir).resolve()
    target = (site_path / output_dir).resolve()
    try:
        rel = target.relative_to(site_path)
    except ValueError:
        raise PluginError(f"output_dir '{output_dir}' resolves outside site_dir ({target})") from None
    if rel == Path("."):
        raise PluginError(f"output_dir '{output_dir}' resolves to site_dir itself")
    return target


def reset_directory(output_dir: Path) -> None:
    """Remove existing artifacts before writing fresh files."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for entry in output_dir.iterdir():
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def write_route_table(routes: List[Route], out_path: Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(dump_json([r.as_dict() for r in routes]), encoding="utf-8")
    log.info(f"[content_utils] route table written to {out_path} (routes={len(routes)})")
    return out_path
