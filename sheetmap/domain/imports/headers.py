"""
Header normalization and resolution against a field index.

Spreadsheet headers are free text ("Номер телефона", " First Name ",
"owner.name"). They are canonicalized into lookup keys and then matched to a
field path with a fixed precedence:

1. normalized key in the direct label table
2. normalized key in the one-to-many relation label table
3. raw lower-cased header in the direct label table
4. keyword heuristics over the raw header
"""
import logging
import re
from typing import Any, List, NamedTuple, Optional, Tuple

from sheetmap.domain.imports.models import FieldIndex
from sheetmap.domain.imports.policy import DEFAULT_POLICY, HeaderPolicy

logger = logging.getLogger(__name__)

_LINE_BREAKS_RE = re.compile(r'[\r\n]+')
_QUOTES_RE = re.compile(r'["\'`«»“”„‘’]')
_WHITESPACE_RE = re.compile(r'\s+')


def _base_normalize(text: str) -> str:
    normalized = text.lower()
    normalized = _LINE_BREAKS_RE.sub(' ', normalized)
    normalized = _QUOTES_RE.sub('', normalized)
    normalized = normalized.strip()
    return _WHITESPACE_RE.sub('_', normalized)


class HeaderNormalizer:
    """
    Canonicalize raw headers into lookup keys.

    Lowercases, drops line breaks and quote characters, collapses whitespace
    to ``_`` and applies the policy's phrase substitutions until nothing
    changes, which keeps ``normalize`` idempotent.
    """

    def __init__(self, policy: Optional[HeaderPolicy] = None):
        self.policy = policy or DEFAULT_POLICY
        self._substitutions: List[Tuple[str, str]] = []
        for substitution in self.policy.substitutions:
            phrase = _base_normalize(substitution.phrase)
            if not phrase:
                continue
            self._substitutions.append((phrase, _base_normalize(substitution.token)))
        self._max_passes = len(self._substitutions) + 1

    def normalize(self, header: Any) -> str:
        if header is None:
            return ""
        key = _base_normalize(str(header))

        for _ in range(self._max_passes):
            substituted = key
            for phrase, token in self._substitutions:
                if phrase in substituted:
                    substituted = substituted.replace(phrase, token)
            if substituted == key:
                return key
            key = substituted

        logger.warning("Header substitutions did not settle for '%s'; check the policy for cycles", header)
        return key

    __call__ = normalize


def normalize_header(header: Any, policy: Optional[HeaderPolicy] = None) -> str:
    """Canonical lookup key for a raw header."""
    return HeaderNormalizer(policy).normalize(header)


class HeaderMatch(NamedTuple):
    path: Optional[str]
    key: str
    strategy: Optional[str]


class HeaderResolver:
    """Map headers to field paths for one index."""

    def __init__(self, index: FieldIndex, policy: Optional[HeaderPolicy] = None,
                 normalizer: Optional[HeaderNormalizer] = None):
        self.index = index
        self.policy = policy or DEFAULT_POLICY
        self.normalizer = normalizer or HeaderNormalizer(self.policy)

    def match(self, header: Any) -> HeaderMatch:
        key = self.normalizer.normalize(header)
        raw = "" if header is None else str(header)

        path = self.index.by_label.get(key)
        if path is not None:
            return HeaderMatch(path, key, "label")

        path = self.index.by_relation_label.get(key)
        if path is not None:
            return HeaderMatch(path, key, "relation_label")

        lowered = raw.strip().lower()
        path = self.index.by_label.get(lowered)
        if path is not None:
            return HeaderMatch(path, key, "raw_label")

        path = self._match_heuristic(raw.lower())
        if path is not None:
            return HeaderMatch(path, key, "heuristic")

        return HeaderMatch(None, key, None)

    def resolve(self, header: Any) -> Optional[str]:
        return self.match(header).path

    def _match_heuristic(self, lowered_header: str) -> Optional[str]:
        for category in self.policy.heuristics:
            if not category.matches(lowered_header):
                continue
            token = category.token.lower()
            # First structural match in insertion order
            for label, path in self.index.by_label.items():
                if token in label:
                    logger.debug("Heuristic '%s' matched header '%s' to '%s'", category.token, lowered_header, path)
                    return path
        return None


def resolve_header(header: Any, index: FieldIndex, policy: Optional[HeaderPolicy] = None) -> Optional[str]:
    """Field path for ``header`` or None when it should pass through unmapped."""
    return HeaderResolver(index, policy).resolve(header)
