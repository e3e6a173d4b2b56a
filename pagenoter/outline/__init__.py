from pagenoter.outline.document import (  # noqa: F401
    Heading,
    OutlineDocument,
    ReadOnlyError,
)
from pagenoter.outline.tree import OutlineNode, build_tree  # noqa: F401
