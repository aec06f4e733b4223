"""
Quorum Backend - Tag and Category Route Handlers
================================================

Catalog data changes rarely, so responses carry a short public cache.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.database import get_db_session
from quorum.schemas.common import CategoryResponse, TagResponse
from quorum.services.taxonomy_service import taxonomy_service

router = APIRouter(prefix="/api", tags=["Catalog"])


@router.get("/tags", response_model=List[TagResponse], summary="List tags, most used first")
async def list_tags(
    response: Response,
    q: Optional[str] = Query(default=None, max_length=50, description="Tag name search"),
    db: AsyncSession = Depends(get_db_session),
) -> List[TagResponse]:
    response.headers["Cache-Control"] = "public, max-age=60"
    return await taxonomy_service.list_tags(db, search=q)


@router.get("/categories", response_model=List[CategoryResponse], summary="List categories")
async def list_categories(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> List[CategoryResponse]:
    response.headers["Cache-Control"] = "public, max-age=300"
    return await taxonomy_service.list_categories(db)
