"""
Quorum Backend - Taxonomy Service
=================================

What:  Read-only listings of tags and categories for the ask form and filters.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.exceptions import DatabaseError
from quorum.models.taxonomy import Category, Tag
from quorum.schemas.common import CategoryResponse, TagResponse

logger = logging.getLogger(__name__)


class TaxonomyService:

    async def list_tags(
        self, db: AsyncSession, search: Optional[str] = None
    ) -> List[TagResponse]:
        """Most used tags first; `search` matches tag names case-insensitively."""
        query = select(Tag)
        if search and search.strip():
            query = query.where(Tag.name.icontains(search.strip(), autoescape=True))
        query = query.order_by(Tag.usage_count.desc(), Tag.name.asc())

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing tags: %s", str(e))
            raise DatabaseError(message="Could not load tags. Please try again.")
        return [TagResponse.model_validate(tag) for tag in result.scalars().all()]

    async def list_categories(self, db: AsyncSession) -> List[CategoryResponse]:
        try:
            result = await db.execute(select(Category).order_by(Category.name.asc()))
        except SQLAlchemyError as e:
            logger.error("Database error listing categories: %s", str(e))
            raise DatabaseError(message="Could not load categories. Please try again.")
        return [CategoryResponse.model_validate(c) for c in result.scalars().all()]


taxonomy_service = TaxonomyService()
