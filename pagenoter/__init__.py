__appname__ = "pagenoter"

from pagenoter.version import __version__  # noqa: E402,F401
