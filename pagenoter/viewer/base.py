from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pagenoter.core.errors import UserInputError
from pagenoter.utils.logger import logger


class ViewerKind(str, Enum):
    PAGED = "paged"
    QT_PDF = "qt-pdf"


PageListener = Callable[[Any, int], None]


class ViewerDriver(ABC):
    """Adapter between the noter core and one kind of document viewer.

    Pages are 1-based at this interface whatever the viewer uses inside.
    """

    kind: ViewerKind

    @abstractmethod
    def current_page(self, handle: Any) -> int:
        pass

    @abstractmethod
    def goto_page(self, handle: Any, page: int) -> None:
        pass

    @abstractmethod
    def page_count(self, handle: Any) -> int:
        pass

    @abstractmethod
    def connect_page_changed(self, handle: Any, listener: PageListener) -> None:
        pass

    @abstractmethod
    def disconnect_page_changed(self, handle: Any, listener: PageListener) -> None:
        pass

    @abstractmethod
    def is_live(self, handle: Any) -> bool:
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        pass

    @abstractmethod
    def select(self, handle: Any) -> None:
        pass


_DRIVERS: Dict[ViewerKind, ViewerDriver] = {}


def register_driver(driver: ViewerDriver) -> ViewerDriver:
    _DRIVERS[driver.kind] = driver
    return driver


def driver_for(kind: ViewerKind) -> ViewerDriver:
    driver = _DRIVERS.get(kind)
    if driver is None:
        raise UserInputError(f"Unsupported viewer kind: {getattr(kind, 'value', kind)}")
    return driver


def count_pdf_pages(path: Union[str, Path]) -> int:
    """Open ``path`` with PyMuPDF and return its page count."""
    try:
        import fitz  # type: ignore[import]
    except ImportError as exc:  # pragma: no cover - dependency missing
        raise RuntimeError(
            "PyMuPDF (pymupdf) is required to open PDF files."
        ) from exc
    with fitz.open(str(path)) as doc:
        return int(doc.page_count)


class PagedDocument:
    """Window-less viewer: a page cursor over a document with a page count."""

    def __init__(self, page_count: int, path: Optional[Union[str, Path]] = None) -> None:
        if page_count <= 0:
            raise ValueError("The document does not contain any pages.")
        self.path = Path(path) if path else None
        self._page_count = int(page_count)
        self._page = 1
        self._listeners: List[PageListener] = []
        self.closed = False
        self.selected = False

    @classmethod
    def open(cls, path: Union[str, Path]) -> "PagedDocument":
        return cls(count_pdf_pages(path), path=path)

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_count(self) -> int:
        return self._page_count

    def goto_page(self, page: int) -> None:
        if self.closed:
            return
        if not 1 <= page <= self._page_count:
            logger.debug("Ignoring jump to page %s of %s", page, self._page_count)
            return
        if page == self._page:
            return
        self._page = page
        for listener in list(self._listeners):
            listener(self, page)

    def next_page(self) -> None:
        self.goto_page(self._page + 1)

    def previous_page(self) -> None:
        self.goto_page(self._page - 1)

    def add_listener(self, listener: PageListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: PageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def close(self) -> None:
        self.closed = True
        self._listeners.clear()


class PagedDocumentDriver(ViewerDriver):
    kind = ViewerKind.PAGED

    def current_page(self, handle: PagedDocument) -> int:
        return handle.page

    def goto_page(self, handle: PagedDocument, page: int) -> None:
        handle.goto_page(page)

    def page_count(self, handle: PagedDocument) -> int:
        return handle.page_count

    def connect_page_changed(self, handle: PagedDocument, listener: PageListener) -> None:
        handle.add_listener(listener)

    def disconnect_page_changed(self, handle: PagedDocument, listener: PageListener) -> None:
        handle.remove_listener(listener)

    def is_live(self, handle: PagedDocument) -> bool:
        return not handle.closed

    def close(self, handle: PagedDocument) -> None:
        handle.close()

    def select(self, handle: PagedDocument) -> None:
        handle.selected = True


register_driver(PagedDocumentDriver())
