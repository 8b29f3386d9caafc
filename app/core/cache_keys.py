"""Deterministic cache key construction.

Listing keys hash a canonical JSON rendering of the whole query (filter, page,
limit, sort, order and, for localized namespaces, locale) so that two
structurally equal filters always land on the same key whatever their
insertion order. Detail keys stay readable: namespace, quoted identifier and
locale where the namespace is localized. Admin-scoped queries get their own
prefix so they can never be served from, nor written into, public keys.
"""
import hashlib
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

from app.core.cache_config import DEFAULT_LISTING_PARAMS
from app.core.constants import CacheNamespace, CacheScope, LOCALIZED_NAMESPACES
from app.core.errors import KeySerializationError
from app.utils.slug import canonical_identifier

logger = logging.getLogger(__name__)

ADMIN_PREFIX = "admin:"
LISTING_MARKER = "list"

DETAIL_NAMESPACES = frozenset({
    CacheNamespace.PRODUCT,
    CacheNamespace.BLOG,
    CacheNamespace.CATEGORY,
    CacheNamespace.BRAND,
    CacheNamespace.CART,
})

# Detail routes of these namespaces take an id or a slug
ENTITY_NAMESPACES = DETAIL_NAMESPACES - {CacheNamespace.CART}


def _canonical_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=canonical_json)
    raise TypeError(f"{type(value).__name__} is not canonically serializable")


def canonical_json(value: Any) -> str:
    try:
        return json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=_canonical_default,
        )
    except (TypeError, ValueError, RecursionError) as e:
        raise KeySerializationError(f"Cannot serialize cache key parameters: {e}") from e


def normalize_filter(filters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    # Unset query params arrive as None or "" and must not split the key space
    if not filters:
        return {}
    return {k: v for k, v in filters.items() if v is not None and v != ""}


def _quote(identifier: Any) -> str:
    return quote(str(identifier), safe="")


class CacheKeyPolicy:
    def __init__(self, locales: Sequence[str] = ("en",), default_locale: str = "en"):
        self.locales = tuple(locales)
        self.default_locale = default_locale

    def _scope_prefix(self, scope: CacheScope) -> str:
        return ADMIN_PREFIX if scope == CacheScope.ADMIN else ""

    def _locale(self, locale: Optional[str]) -> str:
        return locale or self.default_locale

    def _identifier(self, namespace: CacheNamespace, identifier: Any) -> str:
        # Zero-padded ids resolve to the same row, so they must share its key
        if namespace in ENTITY_NAMESPACES:
            identifier = canonical_identifier(identifier)
        return _quote(identifier)

    def build_key(self, namespace: CacheNamespace, params: Mapping[str, Any], scope: CacheScope = CacheScope.PUBLIC) -> str:
        if namespace in DETAIL_NAMESPACES:
            return self.detail_key(namespace, params["id"], locale=params.get("locale"), scope=scope)

        digest = hashlib.md5(canonical_json(dict(params)).encode("utf-8")).hexdigest()
        return f"{self._scope_prefix(scope)}{namespace.value}:{LISTING_MARKER}:{digest}"

    def listing_key(
        self,
        namespace: CacheNamespace,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        page: int = 1,
        limit: int = 0,
        sort: Optional[str] = None,
        order: Optional[str] = None,
        locale: Optional[str] = None,
        scope: CacheScope = CacheScope.PUBLIC,
    ) -> str:
        params: Dict[str, Any] = {
            "filter": normalize_filter(filters),
            "page": page,
            "limit": limit,
            "sort": sort,
            "order": order,
        }
        if namespace in LOCALIZED_NAMESPACES:
            params["locale"] = self._locale(locale)
        return self.build_key(namespace, params, scope)

    def detail_key(
        self,
        namespace: CacheNamespace,
        identifier: Any,
        *,
        locale: Optional[str] = None,
        scope: CacheScope = CacheScope.PUBLIC,
    ) -> str:
        key = f"{self._scope_prefix(scope)}{namespace.value}:{self._identifier(namespace, identifier)}"
        if namespace in LOCALIZED_NAMESPACES:
            key = f"{key}:{self._locale(locale)}"
        return key

    def try_listing_key(self, namespace: CacheNamespace, **kwargs) -> Optional[str]:
        try:
            return self.listing_key(namespace, **kwargs)
        except KeySerializationError as e:
            logger.warning(f"Bypassing cache for {namespace.value} listing: {e}")
            return None

    def try_detail_key(self, namespace: CacheNamespace, identifier: Any, **kwargs) -> Optional[str]:
        try:
            return self.detail_key(namespace, identifier, **kwargs)
        except KeySerializationError as e:
            logger.warning(f"Bypassing cache for {namespace.value} detail: {e}")
            return None

    def listing_prefix(self, namespace: CacheNamespace) -> str:
        return f"{namespace.value}:{LISTING_MARKER}:"

    def detail_keys(self, namespace: CacheNamespace, identifier: Any) -> List[str]:
        """Every public detail key an identifier can occupy (all locales for localized namespaces)."""
        if namespace in LOCALIZED_NAMESPACES:
            return [self.detail_key(namespace, identifier, locale=locale) for locale in self.locales]
        return [self.detail_key(namespace, identifier)]

    def detail_prefix(self, namespace: CacheNamespace, identifier: Any) -> Optional[str]:
        if namespace in LOCALIZED_NAMESPACES:
            return f"{namespace.value}:{self._identifier(namespace, identifier)}:"
        return None

    def default_listing_keys(self, namespace: CacheNamespace) -> List[str]:
        keys = []
        for params in DEFAULT_LISTING_PARAMS.get(namespace, []):
            locales = self.locales if namespace in LOCALIZED_NAMESPACES else (None,)
            for locale in locales:
                keys.append(self.listing_key(
                    namespace,
                    filters=params["filter"],
                    page=params["page"],
                    limit=params["limit"],
                    sort=params["sort"],
                    order=params["order"],
                    locale=locale,
                ))
        return keys
