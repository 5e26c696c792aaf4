# pantry/match.py
import re
import unicodedata
from typing import List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process, utils

from .schemas.product import CatalogCandidate


def normalize_name(name: str) -> str:
    """
    Identity key for a product name: "  Albert Heijn  Halfvolle MELK " ->
    "albert heijn halfvolle melk". Two names with the same key are the
    same product.
    """
    s = unicodedata.normalize("NFKC", name or "")
    s = re.sub(r"\s+", " ", s).strip()
    return s.casefold()


def rank_candidates(
    query: str,
    candidates: Sequence[CatalogCandidate],
) -> List[CatalogCandidate]:
    """
    Score candidates against the raw receipt text with WRatio and sort best
    first. Equal scores keep the catalog's own order.
    """
    if not candidates:
        return []
    if not query or not query.strip():
        return list(candidates)

    scored: List[Tuple[int, CatalogCandidate]] = []
    for pos, cand in enumerate(candidates):
        score = fuzz.WRatio(query, cand.title, processor=utils.default_process)
        scored.append((pos, cand.model_copy(update={"score": float(score)})))

    scored.sort(key=lambda item: (-item[1].score, item[0]))
    return [cand for _, cand in scored]


def best_candidate(
    query: str,
    candidates: Sequence[CatalogCandidate],
    score_cutoff: float = 80,
) -> Tuple[Optional[CatalogCandidate], float]:
    """
    Pick the closest candidate title for query.
    Returns (candidate | None, score).
    """
    if not query or not candidates:
        return None, 0.0

    titles = [c.title for c in candidates]
    best = process.extractOne(
        query, titles,
        scorer=fuzz.WRatio,
        processor=utils.default_process,
        score_cutoff=score_cutoff,
    )
    if not best:
        return None, 0.0
    _, score, idx = best
    return candidates[idx].model_copy(update={"score": float(score)}), float(score)
