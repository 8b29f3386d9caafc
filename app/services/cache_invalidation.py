"""Cache invalidation for maintaining read-your-write consistency after catalog mutations.

Each entity type maps to a list of rules; a rule turns an `EntityChange` into the
exact keys and key prefixes it wants purged. Listing namespaces are purged as a
whole: which listing pages embedded a given entity is not tracked.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional
import logging

from app.core.cache import CacheStore
from app.core.cache_keys import CacheKeyPolicy
from app.core.constants import CacheNamespace, EntityType
from app.core.errors import PartialInvalidationFailure

logger = logging.getLogger(__name__)


class Relation(NamedTuple):
    entity_type: EntityType
    entity_id: Any


@dataclass
class EntityChange:
    entity_type: EntityType
    identifiers: List[str]
    relations: List[Relation] = field(default_factory=list)

    def related(self, entity_type: EntityType) -> List[str]:
        return _unique(r.entity_id for r in self.relations if r.entity_type == entity_type)


@dataclass
class InvalidationTarget:
    keys: List[str] = field(default_factory=list)
    prefixes: List[str] = field(default_factory=list)
    # Exact keys to fall back on when the backend cannot enumerate by prefix
    fallback_keys: List[str] = field(default_factory=list)

    def merge(self, other: "InvalidationTarget") -> "InvalidationTarget":
        self.keys.extend(other.keys)
        self.prefixes.extend(other.prefixes)
        self.fallback_keys.extend(other.fallback_keys)
        return self


@dataclass
class InvalidationReport:
    entity_type: EntityType
    entity_id: str
    requested: int = 0
    deleted: int = 0
    failed: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


Rule = Callable[[CacheKeyPolicy, EntityChange], InvalidationTarget]


def _unique(values: Iterable[Any]) -> List[str]:
    return list(dict.fromkeys(str(v) for v in values if v is not None and v != ""))


def _detail_target(policy: CacheKeyPolicy, namespace: CacheNamespace, identifiers: Iterable[str]) -> InvalidationTarget:
    target = InvalidationTarget()
    for identifier in identifiers:
        keys = policy.detail_keys(namespace, identifier)
        target.keys.extend(keys)
        prefix = policy.detail_prefix(namespace, identifier)
        if prefix:
            target.prefixes.append(prefix)
            target.fallback_keys.extend(keys)
    return target


def purge_detail(namespace: CacheNamespace) -> Rule:
    def rule(policy: CacheKeyPolicy, change: EntityChange) -> InvalidationTarget:
        return _detail_target(policy, namespace, change.identifiers)
    return rule


def purge_related_detail(related_type: EntityType, namespace: CacheNamespace) -> Rule:
    def rule(policy: CacheKeyPolicy, change: EntityChange) -> InvalidationTarget:
        return _detail_target(policy, namespace, change.related(related_type))
    return rule


def purge_listing(namespace: CacheNamespace) -> Rule:
    def rule(policy: CacheKeyPolicy, change: EntityChange) -> InvalidationTarget:
        return InvalidationTarget(
            prefixes=[policy.listing_prefix(namespace)],
            fallback_keys=policy.default_listing_keys(namespace),
        )
    return rule


def when_related(related_type: EntityType, inner: Rule) -> Rule:
    def rule(policy: CacheKeyPolicy, change: EntityChange) -> InvalidationTarget:
        if change.related(related_type):
            return inner(policy, change)
        return InvalidationTarget()
    return rule


INVALIDATION_RULES: Dict[EntityType, List[Rule]] = {
    EntityType.PRODUCT: [
        purge_detail(CacheNamespace.PRODUCT),
        purge_listing(CacheNamespace.PRODUCTS),
        # Blog pages and listings embed product snippets
        when_related(EntityType.BLOG, purge_listing(CacheNamespace.BLOGS)),
        purge_related_detail(EntityType.BLOG, CacheNamespace.BLOG),
        when_related(EntityType.PROMOTION, purge_listing(CacheNamespace.PROMOTIONS)),
        purge_related_detail(EntityType.CART, CacheNamespace.CART),
    ],
    EntityType.BLOG: [
        purge_detail(CacheNamespace.BLOG),
        purge_listing(CacheNamespace.BLOGS),
        # Product pages surface related-blog snippets
        purge_related_detail(EntityType.PRODUCT, CacheNamespace.PRODUCT),
    ],
    EntityType.CATEGORY: [
        purge_detail(CacheNamespace.CATEGORY),
        # Parent categories list their children
        purge_related_detail(EntityType.CATEGORY, CacheNamespace.CATEGORY),
        purge_listing(CacheNamespace.CATEGORIES),
        purge_listing(CacheNamespace.PRODUCTS),
        purge_listing(CacheNamespace.BLOGS),
    ],
    EntityType.BRAND: [
        purge_detail(CacheNamespace.BRAND),
        purge_listing(CacheNamespace.BRANDS),
        purge_listing(CacheNamespace.PRODUCTS),
    ],
    EntityType.PROMOTION: [
        purge_listing(CacheNamespace.PROMOTIONS),
        purge_related_detail(EntityType.PRODUCT, CacheNamespace.PRODUCT),
    ],
    EntityType.CART: [
        purge_detail(CacheNamespace.CART),
    ],
}


class InvalidationCoordinator:
    def __init__(self, store: CacheStore, policy: CacheKeyPolicy, rules: Optional[Dict[EntityType, List[Rule]]] = None):
        self.store = store
        self.policy = policy
        self.rules = rules if rules is not None else INVALIDATION_RULES

    def plan(self, change: EntityChange) -> InvalidationTarget:
        rules = self.rules.get(change.entity_type)
        if rules is None:
            logger.warning(f"Unknown entity type for cache invalidation: {change.entity_type}")
            return InvalidationTarget()

        target = InvalidationTarget()
        for rule in rules:
            target.merge(rule(self.policy, change))
        target.keys = _unique(target.keys)
        target.prefixes = _unique(target.prefixes)
        target.fallback_keys = _unique(target.fallback_keys)
        return target

    async def invalidate(
        self,
        entity_type: EntityType,
        entity_id: Any,
        affected_relations: Iterable[Relation] = (),
        *,
        aliases: Iterable[Any] = (),
    ) -> InvalidationReport:
        report = InvalidationReport(entity_type=entity_type, entity_id=str(entity_id))
        try:
            change = EntityChange(
                entity_type=entity_type,
                identifiers=_unique([entity_id, *aliases]),
                relations=list(affected_relations),
            )
            target = self.plan(change)

            operations = []
            labels = []
            if target.keys:
                operations.append(self.store.delete_many(target.keys))
                labels.append(",".join(target.keys))
            for prefix in target.prefixes:
                operations.append(self.store.delete_by_prefix(prefix, fallback_keys=target.fallback_keys))
                labels.append(f"{prefix}*")

            report.requested = len(target.keys) + len(target.prefixes)
            results = await asyncio.gather(*operations)
            report.deleted = sum(result.count for result in results)
            report.failed = [label for label, result in zip(labels, results) if result.failed]
        except Exception as e:
            logger.error(f"Cache invalidation for {entity_type.value} {entity_id} aborted: {e}", exc_info=True)
            report.failed.append("*")

        if report.failed:
            logger.warning(str(PartialInvalidationFailure(f"{entity_type.value}:{entity_id}", report.failed)))
        logger.info(f"Invalidated {report.deleted} cache entries for {entity_type.value} {entity_id}")
        return report
