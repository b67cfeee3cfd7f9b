from .matching import fuzzy_words_present, match_score, token_overlap_ratio
from .service import SOURCE_ACCESSIBILITY, SOURCE_OCR, Resolution, TargetResolver

__all__ = [
    "SOURCE_ACCESSIBILITY",
    "SOURCE_OCR",
    "Resolution",
    "TargetResolver",
    "fuzzy_words_present",
    "match_score",
    "token_overlap_ratio",
]
