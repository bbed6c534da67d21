"""Advisory diagnostics.

Some operations detect input that is suspicious but still usable (for example,
a pyramid level whose x and y downsamples disagree).  Rather than failing,
they report a `Diagnostic` to a sink and carry on.  Any callable accepting a
`Diagnostic` can be used as a sink; by default, diagnostics are issued as
`ImageMetadataWarning`s.

set IMAGEMETA_SILENCE_DIAGNOSTICS=1 to suppress the default warnings.
"""

from __future__ import annotations

import inspect
import os
import warnings
from typing import TYPE_CHECKING, Any, Callable, NamedTuple

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping


__all__ = [
    "Diagnostic",
    "DiagnosticCollector",
    "DiagnosticSink",
    "ImageMetadataWarning",
    "emit",
    "warn_sink",
]

SILENCE_ENV_VAR = "IMAGEMETA_SILENCE_DIAGNOSTICS"
_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__)) + os.sep


class ImageMetadataWarning(UserWarning):
    """Warning category used by the default diagnostic sink."""


class Diagnostic(NamedTuple):
    """A non-fatal report about questionable input."""

    source: str  # name of the operation that emitted it
    message: str
    details: Mapping[str, Any]


DiagnosticSink = Callable[[Diagnostic], None]


def warn_sink(diagnostic: Diagnostic) -> None:
    """Default sink: issue the diagnostic message as an `ImageMetadataWarning`."""
    if os.getenv(SILENCE_ENV_VAR):
        return
    warnings.warn(
        diagnostic.message, ImageMetadataWarning, stacklevel=_external_stacklevel()
    )


def _external_stacklevel() -> int:
    """Stack level of the first frame outside imagemeta, relative to the caller."""
    frame = inspect.currentframe()
    # skip this function: level 1 is whoever calls warnings.warn
    frame = frame.f_back if frame is not None else None
    level = 1
    while frame is not None and frame.f_code.co_filename.startswith(_PACKAGE_DIR):
        frame = frame.f_back
        level += 1
    return level


def emit(
    sink: DiagnosticSink | None, source: str, message: str, **details: Any
) -> Diagnostic:
    """Build a `Diagnostic` and send it to `sink` (or `warn_sink` if None)."""
    diagnostic = Diagnostic(source=source, message=message, details=details)
    (warn_sink if sink is None else sink)(diagnostic)
    return diagnostic


class DiagnosticCollector:
    """A sink that records every diagnostic it receives.

    Examples
    --------
    >>> from imagemeta import estimate_downsample
    >>> collector = DiagnosticCollector()
    >>> round(estimate_downsample(1000, 2000, 100, 150, 1, diagnostics=collector), 2)
    11.67
    >>> len(collector)
    1
    >>> collector.sources()
    ['estimate_downsample']
    """

    def __init__(self) -> None:
        self.events: list[Diagnostic] = []

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.events.append(diagnostic)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.events)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {len(self.events)} events>"

    def sources(self) -> list[str]:
        """Return the source of each recorded diagnostic, in order."""
        return [d.source for d in self.events]

    def from_source(self, source: str) -> list[Diagnostic]:
        """Return recorded diagnostics emitted by `source`."""
        return [d for d in self.events if d.source == source]

    def clear(self) -> None:
        self.events.clear()
