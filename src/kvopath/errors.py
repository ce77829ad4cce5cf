"""Exceptions raised by kvopath.

Structural problems (a malformed path, something that should be callable but
isn't, a dependency cycle) raise immediately. Missing data never raises; it is
routed to ``unknown_property`` or comes back as ``MISSING``.
"""

from __future__ import annotations


class MalformedPathError(ValueError):
    """A property path that does not follow the path grammar.

    The message reproduces the path, marks the failing index with a caret,
    and says what was expected there.
    """

    def __init__(self, path: str, index: int, expected: str, got: str) -> None:
        self.path = path
        self.index = index
        self.expected = expected
        self.got = got
        actual = f"'{got}'" if got else "the end of the path"
        super().__init__(
            "Malformed property path:\n"
            f"{path}\n"
            f"{'-' * index}^\n"
            f"Expected {expected} as the next token, but got {actual}."
        )


class NotCallableError(TypeError):
    """A value that must be invocable (handler, condition, computed function) is not."""

    def __init__(self, value: object, role: str = "value") -> None:
        self.value = value
        self.role = role
        super().__init__(f"{role} {value!r} is not callable.")


class CyclicDependencyError(ValueError):
    """Computed properties whose dependency keys lead back to themselves."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__("Cyclic property dependency: " + " -> ".join(cycle))
