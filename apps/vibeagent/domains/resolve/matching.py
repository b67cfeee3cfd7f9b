from typing import Iterable, Optional, Sequence, Tuple

from shared.text import normalize_text

TOKEN_WEIGHT = 0.7
PREFIX_WEIGHT = 0.3
MIN_OCR_SCORE = 0.25
FUZZY_WORD_RATIO = 0.7
MIN_FUZZY_WORD_LENGTH = 3


def common_prefix_length(first: str, second: str) -> int:
    count = 0
    for left, right in zip(first, second):
        if left != right:
            break
        count += 1
    return count


def token_overlap_ratio(target: str, text: str) -> float:
    target_tokens = set(normalize_text(target).split())
    if not target_tokens:
        return 0.0
    text_tokens = set(normalize_text(text).split())
    return len(target_tokens & text_tokens) / float(len(target_tokens))


def match_score(
    text: str,
    target: str,
    token_weight: float = TOKEN_WEIGHT,
    prefix_weight: float = PREFIX_WEIGHT,
) -> float:
    """Score how well ``text`` matches ``target``; containment counts as a full match."""
    norm_text = normalize_text(text)
    norm_target = normalize_text(target)
    if not norm_target:
        return 0.0
    if norm_target in norm_text:
        return 1.0
    prefix = common_prefix_length(norm_text, norm_target) / float(len(norm_target))
    return token_weight * token_overlap_ratio(norm_target, norm_text) + prefix_weight * prefix


def best_match(
    candidates: Iterable[Tuple[str, object]],
    target: str,
    threshold: float = MIN_OCR_SCORE,
    token_weight: float = TOKEN_WEIGHT,
    prefix_weight: float = PREFIX_WEIGHT,
) -> Optional[Tuple[object, float]]:
    best = None
    best_score = 0.0
    for text, item in candidates:
        score = match_score(text, target, token_weight, prefix_weight)
        if score > best_score:
            best, best_score = item, score
    if best is None or best_score < threshold:
        return None
    return best, best_score


def fuzzy_words_present(target: str, text: str, ratio: float = FUZZY_WORD_RATIO) -> bool:
    """True when enough target words show up in ``text``.

    Words shorter than ``MIN_FUZZY_WORD_LENGTH`` never match but still count
    towards the total.
    """
    words = normalize_text(target).split()
    if not words:
        return False
    haystack: Sequence[str] = normalize_text(text).split()
    matched = 0
    for word in words:
        if len(word) < MIN_FUZZY_WORD_LENGTH:
            continue
        for candidate in haystack:
            if word in candidate or (len(candidate) >= MIN_FUZZY_WORD_LENGTH and candidate in word):
                matched += 1
                break
    return matched / float(len(words)) >= ratio
