"""Provider matching for checklist steps and directory search.

The relevance score is a heuristic ranking: a type match is worth 10, each
provider tag mentioned in the context 5, and each longer context word that
also appears in the provider description 2. It is not a relevance guarantee.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from eventcraft.db.enums import SubscriptionStatus
from eventcraft.db.models import Provider
from eventcraft.schemas.provider import ProviderOwner, ScoredProviderRead

logger = logging.getLogger(__name__)

TYPE_MATCH_SCORE = 10
TAG_MATCH_SCORE = 5
KEYWORD_MATCH_SCORE = 2
MIN_KEYWORD_LENGTH = 4

CHECKLIST_MATCH_LIMIT = 6
SEARCH_MATCH_LIMIT = 10

# "... in Toronto, ..." / "... in north york" at the end of the text
CITY_HINT_PATTERN = re.compile(r"\bin\s+([a-zA-Z\s]+?)(?:\s+in|\s*,|\s*$)")


@dataclass
class ScoredProvider:
    provider: Provider
    score: int


def score_provider(provider: Provider, desired_tags: Iterable[str], context: str) -> int:
    """Heuristic relevance of one provider for a step or search."""
    desired = {t.lower() for t in desired_tags or []}
    context_lower = (context or "").lower()
    score = 0

    if (provider.provider_type or "").lower() in desired:
        score += TYPE_MATCH_SCORE

    for tag in provider.tags or []:
        if tag and tag.lower() in context_lower:
            score += TAG_MATCH_SCORE

    description_words = set((provider.description or "").lower().split())
    # Repeated context words count once per occurrence
    shared = [
        word for word in context_lower.split()
        if len(word) >= MIN_KEYWORD_LENGTH and word in description_words
    ]
    score += len(shared) * KEYWORD_MATCH_SCORE

    return score


def rank_providers(
    providers: Sequence[Provider],
    desired_tags: Iterable[str],
    context: str,
    limit: int = CHECKLIST_MATCH_LIMIT,
) -> list[ScoredProvider]:
    """Score, sort by descending score (ties keep input order), and truncate."""
    desired = list(desired_tags or [])
    scored = [
        ScoredProvider(provider=p, score=score_provider(p, desired, context))
        for p in providers
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:limit]


def extract_city_hint(context: str) -> str | None:
    """City named by an "in <city>" phrase in free text, if any."""
    match = CITY_HINT_PATTERN.search((context or "").lower())
    if not match:
        return None
    city = match.group(1).strip()
    return city or None


def visible_providers_query():
    """Active providers with an active subscription, in stable order."""
    return (
        select(Provider)
        .options(selectinload(Provider.user))
        .where(
            Provider.is_active.is_(True),
            Provider.subscription_status == SubscriptionStatus.ACTIVE.value,
        )
        .order_by(Provider.created_at, Provider.id)
    )


def _overlaps(provider: Provider, tags: set[str]) -> bool:
    if (provider.provider_type or "").lower() in tags:
        return True
    return any((t or "").lower() in tags for t in provider.tags or [])


def _load_candidates(
    db: Session, tags: Sequence[str] | None, criteria, city: str | None
) -> list[Provider]:
    query = visible_providers_query()
    if city:
        query = query.where(Provider.location_city.ilike(f"%{city}%"))

    province = getattr(criteria, "province", None)
    if province:
        query = query.where(Provider.location_province.ilike(f"%{province}%"))

    candidates = list(db.execute(query).scalars().all())

    wanted = {t.lower() for t in tags or [] if t}
    if wanted:
        candidates = [p for p in candidates if _overlaps(p, wanted)]

    criteria_tags = {t.lower() for t in getattr(criteria, "tags", None) or [] if t}
    if criteria_tags:
        candidates = [p for p in candidates if _overlaps(p, criteria_tags)]
    return candidates


def find_matching_providers(
    db: Session,
    tags: Sequence[str] | None,
    context: str,
    criteria=None,
    limit: int = CHECKLIST_MATCH_LIMIT,
) -> list[ScoredProvider]:
    """
    Load visible candidates for a step and rank them.

    Candidates are narrowed to providers whose type or tags intersect
    ``tags`` (when given), to the city from ``criteria.city`` or from an
    "in <city>" phrase in ``context``, and to ``criteria.province`` and
    ``criteria.tags`` when present. A city taken from ``context`` is dropped
    when it leaves no candidates.
    """
    criteria_city = getattr(criteria, "city", None)
    city = criteria_city or extract_city_hint(context)

    candidates = _load_candidates(db, tags, criteria, city)
    if not candidates and city and not criteria_city:
        # A city guessed from free text must not empty the step
        candidates = _load_candidates(db, tags, criteria, None)

    ranked = rank_providers(candidates, tags or [], context, limit=limit)
    logger.debug(
        "Matched providers",
        extra={"candidates": len(candidates), "returned": len(ranked)},
    )
    return ranked


def to_scored_read(scored: ScoredProvider) -> ScoredProviderRead:
    provider = scored.provider
    return ScoredProviderRead(
        id=provider.id,
        business_name=provider.business_name,
        provider_type=provider.provider_type,
        location_city=provider.location_city,
        location_province=provider.location_province,
        description=provider.description or "",
        tags=list(provider.tags or []),
        logo_url=provider.logo_url,
        relevance_score=scored.score,
        user=ProviderOwner.model_validate(provider.user) if provider.user else None,
    )
