import re

NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
MULTI_SLASH = re.compile(r"/{2,}")


def slugify(label: str, default: str = "") -> str:
    """Lowercase, collapse runs of non-alphanumerics into one hyphen, trim hyphens."""
    s = NON_ALNUM_RUN.sub("-", str(label).strip().lower()).strip("-")
    return s or default


def join_url(*parts: str) -> str:
    """
    Join URL path segments with single slashes.
    The result always starts with '/' and never ends with one (except the root).
    """
    joined = "/".join(str(p).strip("/") for p in parts if p not in (None, ""))
    joined = MULTI_SLASH.sub("/", f"/{joined}")
    if len(joined) > 1:
        joined = joined.rstrip("/")
    return joined
