"""Character-level comparison of invoice and ledger product names.

Both names are compared with whitespace removed and lowercased. Each invoice
character is aligned twice: from the start and from the end of the ledger
name. A character matches if either alignment agrees, so a single run of
inserted or deleted characters only flags the characters inside the run.
This is a display heuristic, not an edit-distance alignment.
"""

from __future__ import annotations

from dataclasses import dataclass

from gst_reconciler.model import CharMatch
from gst_reconciler.normalize import strip_whitespace


@dataclass(frozen=True, slots=True)
class NameDiff:
    mask: tuple[CharMatch, ...]
    has_mismatch: bool


def diff_product_names(invoice_name: str | None, ledger_name: str | None) -> NameDiff:
    s1 = strip_whitespace(invoice_name or "").lower()
    s2 = strip_whitespace(ledger_name or "").lower()
    n, m = len(s1), len(s2)

    forward = [False] * n
    backward = [False] * n
    for i in range(min(n, m)):
        if s1[i] == s2[i]:
            forward[i] = True
        if s1[n - 1 - i] == s2[m - 1 - i]:
            backward[n - 1 - i] = True

    mask = tuple(
        CharMatch(character=char, matches=forward[i] or backward[i])
        for i, char in enumerate(s1)
    )
    return NameDiff(mask=mask, has_mismatch=any(not c.matches for c in mask))


def expand_mask(original_name: str | None, mask: tuple[CharMatch, ...]) -> list[CharMatch]:
    """Spread ``mask`` back over the original (spaced, cased) invoice name.

    Whitespace always counts as matching; the mask index only advances on
    non-whitespace characters.
    """

    expanded: list[CharMatch] = []
    index = 0
    for char in original_name or "":
        if char.isspace():
            expanded.append(CharMatch(character=char, matches=True))
            continue
        matches = mask[index].matches if index < len(mask) else False
        expanded.append(CharMatch(character=char, matches=matches))
        index += 1
    return expanded


__all__ = ["NameDiff", "diff_product_names", "expand_mask"]
