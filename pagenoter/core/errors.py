from __future__ import annotations


class PageNoterError(Exception):
    """Base class for errors reported to the user by noter commands."""


class UserInputError(PageNoterError):
    """Bad document path, invocation outside a heading, unsupported viewer."""


class NavigationMiss(PageNoterError):
    """No note exists in the requested direction."""


NO_PREVIOUS_NOTE = "no previous note"
NO_NEXT_NOTE = "no next note"
NO_NOTE_SELECTED = "no note selected"
OUTSIDE_HEADING = "must be inside a heading"
