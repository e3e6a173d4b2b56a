from pagenoter.viewer.base import (  # noqa: F401
    PagedDocument,
    PagedDocumentDriver,
    ViewerDriver,
    ViewerKind,
    driver_for,
    register_driver,
)
