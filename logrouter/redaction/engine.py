"""Redaction engine.

Two passes run over every message body:

1. ``scrub_credentials``: credential discovery.  For each category, in
   order, the body is decoded as envelope(s), as a mapping wrapper and as a
   bare record list; every literal surfaced is replaced by the marker.  Each
   stage sees the text as already rewritten by the stage before it.
2. Directory literals: every value known to the ``SecretDirectory`` is
   replaced in the order the directory returned them.

Replacement is textual.  A marker already present in the text is never
rewritten, so running the engine over its own output changes nothing.  A
value that already carries a marker (partly redacted by an earlier stage,
or sent that way) is still replaced as a whole; its markers only match
whole markers in the text.
"""

from __future__ import annotations

from typing import Iterable

from logrouter.exceptions import DirectoryUnavailableError
from logrouter.logging import get_logger
from logrouter.redaction.categories import Category, extract_all
from logrouter.redaction.directory import SecretDirectory
from logrouter.redaction.envelope import decode_envelopes, first_listed_record, unwrap_mapping

log = get_logger(__name__)

DEFAULT_MARKER = "[OBFUSCATED]"
DEFAULT_FAILURE_SENTINEL = "[ An error occurred trying to obfuscate this message ]"


def _replace_spanning(text: str, fragments: list[str], marker: str) -> str:
    """Replace a needle that contains markers, matching them only against whole markers.

    *fragments* is the needle split on the marker.  An occurrence ends one
    text segment with the first fragment, matches the middle fragments
    segment for segment, and starts a later segment with the last one.
    """
    segments = text.split(marker)
    head, middle, tail = fragments[0], fragments[1:-1], fragments[-1]
    span = len(fragments) - 1

    out = [segments[0]]
    i = 0
    while i + span < len(segments):
        last = out[-1]
        if (
            last.endswith(head)
            and segments[i + 1 : i + span] == middle
            and segments[i + span].startswith(tail)
        ):
            out[-1] = last[: len(last) - len(head)]
            out.append(segments[i + span][len(tail) :])
            i += span
        else:
            out.append(segments[i + 1])
            i += 1
    out.extend(segments[i + 1 :])
    return marker.join(out)


def _replace(text: str, needle: str, marker: str) -> str:
    """Replace every occurrence of *needle* without touching existing markers."""
    if not needle:
        return text
    if marker in needle:
        fragments = needle.split(marker)
        if not any(fragments):
            # Nothing but markers: already fully redacted.
            return text
        return _replace_spanning(text, fragments, marker)
    return marker.join(segment.replace(needle, marker) for segment in text.split(marker))


def replace_all(text: str, needles: Iterable[str], marker: str = DEFAULT_MARKER) -> str:
    for needle in needles:
        text = _replace(text, needle, marker)
    return text


def _category_candidates(text: str, category: Category) -> list[str]:
    return extract_all(category, decode_envelopes(text))


def scrub_credentials(raw: str, marker: str = DEFAULT_MARKER) -> str:
    """Remove every credential discoverable from the structure of *raw*.

    Pure and synchronous; never raises.  Non-JSON input is returned
    unchanged.
    """
    text = raw
    for category in Category:
        text = replace_all(text, _category_candidates(text, category), marker)

        inner = unwrap_mapping(text)
        if inner is not None:
            text = replace_all(text, _category_candidates(inner, category), marker)

        record = first_listed_record(text)
        if record is not None:
            text = replace_all(text, _category_candidates(record, category), marker)

    return text


class Redactor:
    """Async entry point used by the router and every adapter.

    Usage::

        redactor = Redactor(directory)
        clean = await redactor.redact(message.text())

    With ``directory=None`` only credential discovery runs.
    """

    def __init__(
        self,
        directory: SecretDirectory | None = None,
        marker: str = DEFAULT_MARKER,
        failure_sentinel: str = DEFAULT_FAILURE_SENTINEL,
    ) -> None:
        self._directory = directory
        self.marker = marker
        self.failure_sentinel = failure_sentinel

    async def redact(self, raw: str) -> str:
        text = scrub_credentials(raw, self.marker)
        if self._directory is None:
            return text

        try:
            literals = await self._directory.get_literals()
        except DirectoryUnavailableError as exc:
            log.warning("redaction_unavailable", error=exc.reason)
            return self.failure_sentinel

        return replace_all(text, literals, self.marker)

    __call__ = redact
