import re
from typing import Iterable, List, Optional, Sequence, Union

from .schemas.receipt import (
    ExtractionResult,
    ExtractionStatus,
    OcrObservation,
    ReceiptLine,
    ReceiptMarkers,
)

# A bare price with no description, e.g. "0.50", "0,50", "-1,25"
AMOUNT_ONLY = re.compile(r"^\s*-?\d+[.,]\d{2}\s*$")

DEFAULT_MARKERS = ReceiptMarkers()


def _top_text(obs: Union[OcrObservation, str]) -> str:
    if isinstance(obs, str):
        return obs
    return obs.text


def _contains_any(text: str, needles: Iterable[str]) -> Optional[str]:
    low = text.lower()
    for n in needles:
        if n and n in low:
            return n
    return None


def _is_noise(text: str, markers: ReceiptMarkers) -> bool:
    if not text.strip():
        return True
    if AMOUNT_ONLY.match(text):
        return True
    return _contains_any(text, markers.denylist) is not None


def _start_index(lines: Sequence[str], markers: ReceiptMarkers) -> Optional[int]:
    # Last marker wins: headers are often repeated above the item block
    found = None
    for i, text in enumerate(lines):
        if _contains_any(text, markers.start):
            found = i
    return found


def _end_index(lines: Sequence[str], markers: ReceiptMarkers, begin: int) -> Optional[int]:
    for i in range(begin, len(lines)):
        if _contains_any(lines[i], markers.end):
            return i
    return None


def _looks_like_header_tail(text: str, markers: ReceiptMarkers) -> bool:
    if "=" in text:
        return True
    return _contains_any(text, markers.start) is not None or _contains_any(text, markers.end) is not None


def extract_receipt_lines(
    observations: Iterable[Union[OcrObservation, str]],
    markers: Optional[ReceiptMarkers] = None,
) -> ExtractionResult:
    """
    Cut the itemized block out of OCR rows given in reading order.

      Bonus
      Milk 1L  1.09
      =                 <- last start marker
      Bread  2.20       <- kept
      TOTAAL  3.29      <- first end marker, dropped with everything below

    Steps:
      - abort when a customer-copy/approval keyword appears on any row,
      - drop bare amounts and denylisted rows (deposit lines),
      - drop everything above the last start marker,
      - drop everything from the first end marker after it,
      - drop a single leftover header row ("=", a header word or a total
        marker) at the top.
    Pure and deterministic; the same rows always give the same result.
    """
    markers = markers or DEFAULT_MARKERS

    texts: List[str] = [_top_text(o).strip() for o in observations]

    # Card slips print "KLANT KOPIE"/"AKKOORD" anywhere, often below the total
    for text in texts:
        if _contains_any(text, markers.abort):
            return ExtractionResult(status=ExtractionStatus.NOT_A_RECEIPT, lines=[])

    kept = [t for t in texts if not _is_noise(t, markers)]

    start = _start_index(kept, markers)
    if start is not None:
        kept = kept[start:]
    # The start row itself may carry an end keyword ("TOTAAL ===="); search past it
    end = _end_index(kept, markers, 1 if start is not None else 0)
    if end is not None:
        kept = kept[:end]

    if len(kept) > 1 and _looks_like_header_tail(kept[0], markers):
        kept = kept[1:]
    elif len(kept) == 1 and start is not None and _looks_like_header_tail(kept[0], markers):
        # Only the marker row survived
        kept = []

    lines = [ReceiptLine(index=i, text=t) for i, t in enumerate(kept)]
    if not lines:
        return ExtractionResult(status=ExtractionStatus.NO_ITEMS_FOUND, lines=[])
    return ExtractionResult(status=ExtractionStatus.OK, lines=lines)


def markers_from_settings(settings) -> ReceiptMarkers:
    return ReceiptMarkers(
        start=tuple(m.lower() for m in settings.receipt_start_markers),
        end=tuple(m.lower() for m in settings.receipt_end_markers),
        abort=tuple(m.lower() for m in settings.receipt_abort_keywords),
        denylist=tuple(m.lower() for m in settings.receipt_denylist),
    )
