"""
Header policy: the locale data behind header normalization and resolution.

Phrase substitutions, heuristic keyword categories, boolean truthy tokens and
phone markers are plain data. New locales are added by extending the tables
(or by pointing ``header_policy_path`` at a JSON file), never by editing the
normalizer or resolver.
"""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from sheetmap.core.config import settings

logger = logging.getLogger(__name__)


class PhraseSubstitution(BaseModel):
    """Replace ``phrase`` with ``token`` inside a normalized header."""
    model_config = ConfigDict(frozen=True)

    phrase: str
    token: str


class HeuristicCategory(BaseModel):
    """
    Keyword category for last-resort header matching.

    A raw header belongs to the category when every fragment of at least one
    pattern occurs in it; the resolver then looks for an indexed label that
    contains ``token``.
    """
    model_config = ConfigDict(frozen=True)

    token: str
    patterns: List[List[str]]

    def matches(self, lowered_header: str) -> bool:
        return any(
            pattern and all(fragment.lower() in lowered_header for fragment in pattern)
            for pattern in self.patterns
        )


class HeaderPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    substitutions: List[PhraseSubstitution] = Field(default_factory=list)
    heuristics: List[HeuristicCategory] = Field(default_factory=list)
    truthy_tokens: List[str] = Field(default_factory=lambda: ["true", "1"])
    phone_markers: List[str] = Field(default_factory=lambda: ["phone"])

    def extended(self, other: "HeaderPolicy") -> "HeaderPolicy":
        """
        Combine two policies. Entries from ``other`` come first so that more
        specific locale phrases are tried before the defaults.
        """
        return HeaderPolicy(
            substitutions=[*other.substitutions, *self.substitutions],
            heuristics=[*other.heuristics, *self.heuristics],
            truthy_tokens=_unique([*self.truthy_tokens, *other.truthy_tokens]),
            phone_markers=_unique([*self.phone_markers, *other.phone_markers]),
        )


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


# Longer phrases precede their prefixes ("имя консультанта" before "имя").
DEFAULT_POLICY = HeaderPolicy(
    substitutions=[
        PhraseSubstitution(phrase="номер телефона", token="phone"),
        PhraseSubstitution(phrase="мобильный телефон", token="phone"),
        PhraseSubstitution(phrase="телефон", token="phone"),
        PhraseSubstitution(phrase="модель автомобиля", token="car_model"),
        PhraseSubstitution(phrase="модель авто", token="car_model"),
        PhraseSubstitution(phrase="имя консультанта", token="consultant_name"),
        PhraseSubstitution(phrase="фио консультанта", token="consultant_name"),
        PhraseSubstitution(phrase="дата", token="date"),
        PhraseSubstitution(phrase="фамилия", token="last_name"),
        PhraseSubstitution(phrase="имя", token="first_name"),
    ],
    heuristics=[
        HeuristicCategory(token="date", patterns=[["дата", "прибыт"], ["date", "arrival"]]),
        # "тел" alone would also match nouns ending in "-тель" (покупатель, получатель)
        HeuristicCategory(
            token="phone",
            patterns=[["телефон"], ["тел."], ["тел "], ["мобильн"], ["phone"], ["mobile"]],
        ),
        HeuristicCategory(token="consultant_name", patterns=[["консультант"], ["consultant"]]),
        HeuristicCategory(token="first_name", patterns=[["имя"], ["first", "name"]]),
        HeuristicCategory(token="last_name", patterns=[["фамил"], ["last", "name"], ["surname"]]),
    ],
    truthy_tokens=["true", "1", "yes", "да"],
    phone_markers=["phone", "телефон"],
)


def load_header_policy(path: str, base: Optional[HeaderPolicy] = None) -> HeaderPolicy:
    """Load a policy JSON file and layer it over ``base`` (the defaults when omitted)."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    extra = HeaderPolicy.model_validate(payload)
    logger.info(
        "Loaded header policy from %s (%d substitutions, %d heuristics)",
        path,
        len(extra.substitutions),
        len(extra.heuristics),
    )
    return (base or DEFAULT_POLICY).extended(extra)


@lru_cache(maxsize=1)
def get_header_policy() -> HeaderPolicy:
    """Policy configured for this process."""
    if settings.header_policy_path:
        return load_header_policy(settings.header_policy_path)
    return DEFAULT_POLICY
