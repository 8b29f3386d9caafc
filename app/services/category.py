from collections import defaultdict
from typing import Any, Dict, List, Optional
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.cache_config import CACHE_TTL
from app.core.constants import CacheNamespace, EntityType
from app.crud.blog import blog as blog_crud
from app.crud.category import category as category_crud
from app.crud.product import product as product_crud
from app.models.category import Category as CategoryModel
from app.schemas.category import Category, CategoryCreate, CategoryDetail, CategoryRef, CategoryTreeNode, CategoryUpdate
from app.schemas.response import APIResponse, Pagination
from app.services.base import CachedService, MutationResult
from app.services.cache_invalidation import Relation
from app.services.read_through import CacheContext
from app.utils.slug import slugify, unique_slug

logger = logging.getLogger(__name__)


class CategoryService(CachedService):
    entity_type = EntityType.CATEGORY

    async def list_categories(self, db: Session, *, page: int = 1, limit: int = 100,
                              context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_listing_key(
            CacheNamespace.CATEGORIES, filters={"is_active": True}, page=page, limit=limit, sort="name", order="asc",
        )
        return await self._read(key, CACHE_TTL["category_list"], self._load_listing, db, page, limit, context=context)

    def _load_listing(self, db: Session, page: int, limit: int) -> Dict[str, Any]:
        items = category_crud.get_active(db, skip=(page - 1) * limit, limit=limit)
        return APIResponse(
            message="Categories retrieved successfully",
            data=[Category.model_validate(item) for item in items],
            pagination=Pagination.build(page=page, limit=limit, total=category_crud.count_active(db)),
        ).model_dump(mode="json")

    async def get_tree(self, db: Session, *, context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_listing_key(
            CacheNamespace.CATEGORIES, filters={"view": "tree"}, page=1, limit=0, sort="name", order="asc",
        )
        return await self._read(key, CACHE_TTL["category_tree"], self._load_tree, db, context=context)

    def _load_tree(self, db: Session) -> Dict[str, Any]:
        categories = category_crud.get_active(db, limit=None)
        children = defaultdict(list)
        active_ids = {c.id for c in categories}
        for category in categories:
            # Children of an inactive parent surface at the root
            parent = category.parent_id if category.parent_id in active_ids else None
            children[parent].append(category)

        def build(parent_id) -> List[CategoryTreeNode]:
            return [
                CategoryTreeNode(id=c.id, name=c.name, slug=c.slug, children=build(c.id))
                for c in children.get(parent_id, [])
            ]

        return APIResponse(message="Category tree retrieved successfully", data=build(None)).model_dump(mode="json")

    async def get_category(self, db: Session, identifier: str, *, context: Optional[CacheContext] = None) -> Dict[str, Any]:
        key = self.policy.try_detail_key(CacheNamespace.CATEGORY, identifier)
        return await self._read(key, CACHE_TTL["category_detail"], self._load_detail, db, identifier, context=context)

    def _serialize_detail(self, category: CategoryModel) -> Dict[str, Any]:
        return CategoryDetail(
            **Category.model_validate(category).model_dump(),
            parent=CategoryRef.model_validate(category.parent) if category.parent else None,
            children=[CategoryRef.model_validate(c) for c in category.children if c.is_active],
        ).model_dump(mode="json")

    def _load_detail(self, db: Session, identifier: str) -> Dict[str, Any]:
        category = category_crud.get_by_id_or_slug(db, identifier)
        if not category or not category.is_active:
            self._not_found("Category", identifier)
        return APIResponse(message="Category retrieved successfully", data=self._serialize_detail(category)).model_dump(mode="json")

    def _resolve_slug(self, db: Session, requested: Optional[str], name: str, current_id: Optional[int] = None) -> str:
        if requested:
            slug = slugify(requested)
            if not slug or slug.isdigit():
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Slug must contain letters")
            existing = category_crud.get_by_slug(db, slug)
            if existing and existing.id != current_id:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Category slug '{slug}' already exists")
            return slug
        return unique_slug(name, lambda s: category_crud.get_by_slug(db, s) is not None)

    def _validate_parent(self, db: Session, parent_id: Optional[int], current_id: Optional[int] = None):
        if parent_id is None:
            return
        if parent_id == current_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A category cannot be its own parent")
        parent = category_crud.get(db, parent_id)
        if not parent:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Parent category {parent_id} does not exist")
        # Walk up to refuse cycles
        while parent is not None:
            if parent.id == current_id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category hierarchy cannot contain cycles")
            parent = parent.parent

    @staticmethod
    def _parent_relations(*categories: Optional[CategoryModel]) -> List[Relation]:
        relations = []
        for category in categories:
            if category is not None:
                relations += [Relation(EntityType.CATEGORY, category.id), Relation(EntityType.CATEGORY, category.slug)]
        return relations

    async def create_category(self, db: Session, category_in: CategoryCreate) -> Dict[str, Any]:
        return await self._mutate(self._create, db, category_in)

    def _create(self, db: Session, category_in: CategoryCreate) -> MutationResult:
        self._validate_parent(db, category_in.parent_id)
        data = category_in.model_dump()
        data["slug"] = self._resolve_slug(db, category_in.slug, category_in.name)
        category = category_crud.create(db, obj_in=data)
        logger.info(f"Category created: {category.id} ({category.slug})")
        return MutationResult(
            self._serialize_detail(category),
            category.id,
            aliases=[category.slug],
            relations=self._parent_relations(category.parent),
        )

    async def update_category(self, db: Session, identifier: str, category_in: CategoryUpdate) -> Dict[str, Any]:
        return await self._mutate(self._update, db, identifier, category_in)

    def _update(self, db: Session, identifier: str, category_in: CategoryUpdate) -> MutationResult:
        category = category_crud.get_by_id_or_slug(db, identifier)
        if not category:
            self._not_found("Category", identifier)

        data = category_in.model_dump(exclude_unset=True)
        if "parent_id" in data:
            self._validate_parent(db, data["parent_id"], current_id=category.id)
        if "slug" in data:
            data["slug"] = self._resolve_slug(db, data["slug"], category.name, current_id=category.id)

        old_slug, old_parent = category.slug, category.parent
        category = category_crud.update(db, db_obj=category, obj_in=data)
        logger.info(f"Category updated: {category.id} ({category.slug})")
        return MutationResult(
            self._serialize_detail(category),
            category.id,
            aliases=[old_slug, category.slug],
            relations=self._parent_relations(old_parent, category.parent),
        )

    async def delete_category(self, db: Session, identifier: str) -> Dict[str, Any]:
        return await self._mutate(self._delete, db, identifier)

    def _delete(self, db: Session, identifier: str) -> MutationResult:
        category = category_crud.get_by_id_or_slug(db, identifier)
        if not category:
            self._not_found("Category", identifier)

        dependents = {
            "products": product_crud.count_by_category(db, category.id),
            "blogs": blog_crud.count_by_category(db, category.id),
            "subcategories": category_crud.count_children(db, category.id),
        }
        in_use = {name: count for name, count in dependents.items() if count}
        if in_use:
            summary = ", ".join(f"{count} {name}" for name, count in in_use.items())
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Category '{category.slug}' is still used by {summary}",
            )

        relations = self._parent_relations(category.parent)
        category_id, slug = category.id, category.slug
        category_crud.delete(db, id=category_id)
        logger.info(f"Category deleted: {category_id} ({slug})")
        return MutationResult({"id": category_id, "slug": slug}, category_id, aliases=[slug], relations=relations)
