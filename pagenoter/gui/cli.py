import argparse
from pathlib import Path
from typing import Optional, Sequence, Tuple

from pagenoter.configs import RELATIVE_PATH_CHOICES, get_config, user_config_path

__all__ = ["build_parser", "parse_cli"]


def build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser used by the pagenoter entry point."""
    parser = argparse.ArgumentParser(
        description="Take notes on a PDF, page by page, in an outline file."
    )
    parser.add_argument(
        "notes",
        nargs="?",
        help="outline notes file to open (created on first save)",
    )
    parser.add_argument(
        "--document",
        "-d",
        help="PDF to start a session on right away",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="store_true",
        help="show version and exit",
    )

    default_config_file = user_config_path()
    parser.add_argument(
        "--config",
        dest="config",
        default=default_config_file,
        help=f"config file or yaml format string (default {default_config_file})",
    )
    parser.add_argument(
        "--note-title-template",
        dest="note_title_template",
        help="title for new notes; $p$ is replaced by the page number",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--store-relative-paths",
        dest="store_relative_paths",
        choices=RELATIVE_PATH_CHOICES,
        help="how to record the document path in the notes",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--zoom",
        dest="initial_zoom_percent",
        type=float,
        help="initial PDF zoom in percent",
        default=argparse.SUPPRESS,
    )
    return parser


def parse_cli(
    argv: Optional[Sequence[str]] = None,
) -> Tuple[dict, argparse.Namespace, bool]:
    """Parse CLI arguments and return `(config, namespace, version_requested)`."""
    parser = build_parser()
    namespace = parser.parse_args(argv)
    if namespace.notes:
        namespace.notes = Path(namespace.notes).expanduser()
    if namespace.document:
        namespace.document = Path(namespace.document).expanduser()

    overrides = vars(namespace).copy()
    for positional in ("notes", "document"):
        overrides.pop(positional, None)
    version_requested = overrides.pop("version", False)
    config_file_or_yaml = overrides.pop("config")
    config = get_config(config_file_or_yaml, overrides)
    return config, namespace, bool(version_requested)
