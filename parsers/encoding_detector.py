"""
Encoding detection for marketplace CSV exports.

Shop systems export in Shift_JIS (ColorMe), UTF-8 (Tabechoku) or one of the
older Japanese encodings. Several of them decode the same bytes without
error, so every candidate is decoded strictly and the resulting text is
scored; the best-scoring text wins.

Two phases:
    1. peek_schema_hint() looks at a short byte prefix for a marketplace
       header token and order_candidates() moves the matching encoding first.
    2. detect_encoding() strict-decodes the whole buffer with each candidate
       and scores the text with score_text().
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import structlog

from parsers.source_schemas import (
    CANDIDATE_ENCODINGS,
    MARKETPLACE_TOKENS,
    SourceKind,
    domain_override,
)

logger = structlog.get_logger(__name__)


# Hiragana, katakana and CJK unified ideographs
JAPANESE_CHAR_PATTERN = re.compile(r"[\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF]")

GARBLED_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\ufffd{2,}"),  # replacement character runs
    re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]{3,}"),  # control character runs
)

# Lenient decodings used by the prefix check, in order
PEEK_ENCODINGS: tuple[str, ...] = ("cp932", "utf-8-sig")

DEFAULT_PEEK_BYTES = 100


# ===================
# DATA CLASSES
# ===================

@dataclass(frozen=True)
class ScoringWeights:
    """Tunable weights of score_text()."""
    baseline: float = 0.2
    garbled_penalty: float = 0.3
    script_ratio_cap: float = 0.5
    csv_shape_bonus: float = 0.3
    known_header_bonus: float = 0.4
    cp932_prior: float = 0.4  # only when the text is Japanese and clean
    utf8_prior: float = 0.3  # only when the text is clean
    promotion_threshold: float = 0.5
    lossy_fallback_confidence: float = 0.1


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class SchemaHint:
    """Marketplace implied by the byte prefix, and the decoding that revealed it."""
    kind: SourceKind
    encoding: str


@dataclass
class TextAnalysis:
    """Score of one decoded text."""
    confidence: float
    raw_score: float
    is_japanese: bool
    has_garbled_text: bool
    japanese_ratio: float = 0.0


@dataclass
class EncodingCandidate:
    """One trial decode."""
    encoding: str
    success: bool
    text: Optional[str] = None
    error: Optional[str] = None
    confidence: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "encoding": self.encoding,
            "success": self.success,
            "error": self.error,
            "confidence": self.confidence,
        }


@dataclass
class EncodingResult:
    """Chosen decoding of an upload."""
    text: str
    detected_encoding: str
    confidence: float
    is_japanese: bool
    has_garbled_text: bool
    encoding_attempts: list[EncodingCandidate] = field(default_factory=list)
    schema_hint: Optional[SchemaHint] = None
    used_fallback: bool = False

    def to_debug_dict(self) -> dict:
        """Technical detail for the debug channel."""
        return {
            "detected": self.detected_encoding,
            "confidence": self.confidence,
            "is_japanese": self.is_japanese,
            "has_garbled_text": self.has_garbled_text,
            "used_fallback": self.used_fallback,
            "schema_hint": self.schema_hint.kind.value if self.schema_hint else None,
            "all_attempts": [a.to_dict() for a in self.encoding_attempts],
        }


# ===================
# PHASE 1: PREFIX CHECK
# ===================

def find_marketplace_token(text: str) -> Optional[SourceKind]:
    """Return the marketplace whose header token appears in text."""
    for token, kind in MARKETPLACE_TOKENS.items():
        if token in text:
            return kind
    return None


def peek_schema_hint(
    prefix: bytes,
    encodings: tuple[str, ...] = PEEK_ENCODINGS,
) -> Optional[SchemaHint]:
    """
    Guess the marketplace from the first bytes of a file.

    The prefix may cut a multi-byte character in half, so decoding is
    lenient here.

    Args:
        prefix: First bytes of the upload
        encodings: Decodings to try, in order

    Returns:
        SchemaHint for the first decoding exposing a marketplace token,
        or None
    """
    for encoding in encodings:
        preview = prefix.decode(encoding, errors="replace")
        kind = find_marketplace_token(preview)
        if kind is not None:
            return SchemaHint(kind=kind, encoding=encoding)
    return None


def order_candidates(
    hint: Optional[SchemaHint],
    candidates: tuple[str, ...] = CANDIDATE_ENCODINGS,
) -> list[str]:
    """Trial order with the hinted encoding moved to the front."""
    ordered = list(candidates)
    if hint is not None and hint.encoding in ordered:
        ordered.remove(hint.encoding)
        ordered.insert(0, hint.encoding)
    return ordered


# ===================
# SCORING
# ===================

def is_garbled(text: str) -> bool:
    """True when text shows replacement or control character runs."""
    return any(pattern.search(text) for pattern in GARBLED_PATTERNS)


def _first_line(text: str) -> str:
    return text.split("\n", 1)[0].rstrip("\r")


def score_text(
    text: str,
    encoding: str,
    hint: Optional[SchemaHint] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> TextAnalysis:
    """
    Score how plausible text is as the decoding of a marketplace export.

    Pure function of the decoded text, the encoding name and the prefix hint.

    Args:
        text: Decoded text
        encoding: Codec that produced it
        hint: Result of the prefix check, if any
        weights: Score weights

    Returns:
        TextAnalysis with confidence clamped to [0, 1]
    """
    score = weights.baseline

    has_garbled_text = is_garbled(text)
    if has_garbled_text:
        score -= weights.garbled_penalty

    japanese_count = len(JAPANESE_CHAR_PATTERN.findall(text))
    japanese_ratio = japanese_count / len(text) if text else 0.0
    is_japanese = japanese_count > 0
    if is_japanese:
        score += min(japanese_ratio, weights.script_ratio_cap)

    first_line = _first_line(text)
    if "," in first_line and '"' in first_line:
        score += weights.csv_shape_bonus

    if find_marketplace_token(first_line) is not None:
        score += weights.known_header_bonus

    if not has_garbled_text:
        if encoding == "cp932" and is_japanese:
            score += weights.cp932_prior
        elif encoding.startswith("utf-8"):
            score += weights.utf8_prior

    # Allow-listed (schema, encoding) pairs are promoted once the text
    # already looks good on its own.
    if hint is not None and hint.encoding == encoding:
        bonus = domain_override(hint.kind, encoding)
        if bonus and _clamp(score) > weights.promotion_threshold:
            score += bonus

    return TextAnalysis(
        confidence=_clamp(score),
        raw_score=score,
        is_japanese=is_japanese,
        has_garbled_text=has_garbled_text,
        japanese_ratio=japanese_ratio,
    )


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# ===================
# PHASE 2: TRIAL DECODE
# ===================

def detect_encoding(
    content: bytes,
    peek_bytes: int = DEFAULT_PEEK_BYTES,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> EncodingResult:
    """
    Decode an upload, picking the most plausible encoding.

    Never raises: when no candidate decodes strictly, the bytes are decoded
    as UTF-8 with replacement characters and a fixed low confidence.

    Args:
        content: Raw upload bytes
        peek_bytes: Prefix length inspected by the marketplace check
        weights: Score weights

    Returns:
        EncodingResult with every attempt recorded
    """
    hint = peek_schema_hint(content[:peek_bytes])
    candidates = order_candidates(hint)

    logger.debug(
        "encoding_candidates_ordered",
        hint=hint.kind.value if hint else None,
        hint_encoding=hint.encoding if hint else None,
        candidates=candidates,
    )

    attempts: list[EncodingCandidate] = []
    best: Optional[tuple[EncodingCandidate, TextAnalysis]] = None

    for encoding in candidates:
        try:
            text = content.decode(encoding)
        except UnicodeError as e:
            attempts.append(EncodingCandidate(encoding=encoding, success=False, error=str(e)))
            continue

        analysis = score_text(text, encoding, hint=hint, weights=weights)
        candidate = EncodingCandidate(
            encoding=encoding,
            success=True,
            text=text,
            confidence=analysis.confidence,
        )
        attempts.append(candidate)

        logger.debug(
            "encoding_candidate_scored",
            encoding=encoding,
            confidence=round(analysis.confidence, 3),
            raw_score=round(analysis.raw_score, 3),
            japanese_ratio=round(analysis.japanese_ratio, 3),
            garbled=analysis.has_garbled_text,
        )

        if best is None or (analysis.confidence, analysis.raw_score) > (
            best[1].confidence,
            best[1].raw_score,
        ):
            best = (candidate, analysis)

    if best is None:
        text = content.decode("utf-8", errors="replace")
        fallback = score_text(text, "utf-8", weights=weights)
        logger.warning(
            "encoding_fallback_used",
            attempts=len(attempts),
            garbled=fallback.has_garbled_text,
        )
        return EncodingResult(
            text=text,
            detected_encoding="utf-8",
            confidence=weights.lossy_fallback_confidence,
            is_japanese=fallback.is_japanese,
            has_garbled_text=fallback.has_garbled_text,
            encoding_attempts=attempts,
            schema_hint=hint,
            used_fallback=True,
        )

    candidate, analysis = best
    logger.info(
        "encoding_detected",
        encoding=candidate.encoding,
        confidence=round(analysis.confidence, 3),
        is_japanese=analysis.is_japanese,
        garbled=analysis.has_garbled_text,
        attempts=len(attempts),
    )

    return EncodingResult(
        text=candidate.text,
        detected_encoding=candidate.encoding,
        confidence=analysis.confidence,
        is_japanese=analysis.is_japanese,
        has_garbled_text=analysis.has_garbled_text,
        encoding_attempts=attempts,
        schema_hint=hint,
    )
