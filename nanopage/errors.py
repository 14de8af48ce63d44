from __future__ import annotations

from typing import Optional


class NanoPageError(Exception):
    """Base class for every failure raised while resolving or building pages."""


class NotFound(NanoPageError, LookupError):
    def __init__(self, path: str) -> None:
        super().__init__(f"{path} could not be found")
        self.path = path


class PageError(NanoPageError):
    """A page directory that cannot be turned into a page.

    These are recoverable per page: bulk builds report them next to the
    page name and continue with the remaining directories.
    """

    def __init__(self, message: str, page: Optional[str] = None) -> None:
        super().__init__(message)
        self.page = page


class ZeroMarkdown(PageError):
    pass


class AmbiguousMarkdown(PageError):
    def __init__(self, message: str, page: Optional[str] = None, files: tuple[str, ...] = ()) -> None:
        super().__init__(message, page)
        self.files = files


class SchemaError(PageError):
    pass


class TemplateCompileError(PageError):
    pass


class SlugDerivationError(PageError):
    pass
