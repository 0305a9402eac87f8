from mkdocs.exceptions import PluginError


class ContentError(PluginError):
    """Base class for content pipeline failures. Any of these aborts the build."""


class ContentReadError(ContentError):
    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = str(reason)
        super().__init__(f"Unable to read content file {self.path}: {self.reason}")


class MalformedFrontmatterError(ContentError):
    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = str(reason)
        super().__init__(f"Malformed front matter in {self.path}: {self.reason}")


class RouteCollisionError(ContentError):
    def __init__(self, path: str, first_source: str, second_source: str):
        self.path = path
        self.first_source = first_source
        self.second_source = second_source
        super().__init__(
            f"Route '{path}' is produced by both '{first_source}' and '{second_source}'"
        )
