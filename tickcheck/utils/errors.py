# tickcheck/utils/errors.py
from __future__ import annotations

from pathlib import Path


class TickcheckError(RuntimeError):
    """Base class of every error raised by tickcheck."""


class UserInputError(TickcheckError):
    """
    Raised for invalid user-provided input (paths, tags, options).
    Should NOT print traceback.
    """


class ValidationError(TickcheckError):
    """
    Malformed test definition: negative tick, unknown action kind, bad
    position, cleanup region not covering the timeline.

    That test is skipped and reported; loading continues.
    """

    def __init__(self, message: str, *, path: Path | str | None = None, test: str | None = None):
        self.path = Path(path) if path is not None else None
        self.test = test
        where = test or (self.path.name if self.path else None)
        super().__init__(f"{where}: {message}" if where else message)


class OversizedTest(TickcheckError):
    """Footprint (cleanup region + margin) does not fit one packing cell."""

    def __init__(self, test: str, footprint: tuple[int, int], cell_size: int):
        self.test = test
        self.footprint = footprint
        self.cell_size = cell_size
        super().__init__(
            f"{test}: footprint {footprint[0]}x{footprint[1]} exceeds cell {cell_size}x{cell_size}"
        )


class OverlapError(TickcheckError):
    """
    Two packed regions intersect at merge time.

    Packing guarantees disjointness, so this is a programming defect.
    Fatal to the chunk only.
    """

    def __init__(self, chunk_id: int, first: str, second: str):
        self.chunk_id = chunk_id
        self.first = first
        self.second = second
        super().__init__(f"chunk {chunk_id}: regions of '{first}' and '{second}' overlap")


class TransportError(TickcheckError):
    """A WorldClient call failed (connection lost, timeout, rejected command)."""


class RecorderError(TickcheckError):
    """Invalid recorder operation; the recorder is reset to Off."""
