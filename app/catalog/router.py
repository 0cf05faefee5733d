"""
Route definitions for the catalog API.

Endpoints under /api/catalog:
- GET  /tools                : list tools filtered by text and category
- GET  /tools/{tool_id}      : get one tool
- GET  /categories           : "All" followed by every catalog category
- GET  /guides               : enumerated guides with their titles
- GET  /guides/{slug}        : raw markdown of one guide
- GET  /examples             : enumerated example projects
- GET  /examples/{slug}      : raw markdown of one example project
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from . import documents, store
from .schemas import DocumentRef, PaginatedTools, ToolRecord


router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get("/tools", response_model=PaginatedTools)
def list_tools(
    q: Optional[str] = Query(default=None, description="Text search (name/description/tags)"),
    category: Optional[str] = Query(default=None, description="Category filter, 'All' for none"),
    page: int = Query(default=1, ge=1, description="Current page (1-indexed)"),
    page_size: int = Query(default=24, ge=1, le=200, description="Page size"),
) -> PaginatedTools:
    tools = store.filter_tools(store.TOOLS, q=q, category=category)

    total = len(tools)
    total_pages = max(1, (total + page_size - 1) // page_size) if total > 0 else 1
    page = min(max(1, page), total_pages)

    start = (page - 1) * page_size
    return PaginatedTools(
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
        items=tools[start:start + page_size],
    )


@router.get("/tools/{tool_id}", response_model=ToolRecord)
def get_tool(tool_id: str) -> ToolRecord:
    tool = store.get_tool(tool_id)
    if tool is None:
        raise HTTPException(status_code=404, detail="Tool not found")
    return tool


@router.get("/categories", response_model=List[str])
def list_categories() -> List[str]:
    return store.list_categories(store.TOOLS)


def _document_or_404(kind: str, slug: str) -> PlainTextResponse:
    text = documents.read_document(kind, slug)
    if text is None:
        raise HTTPException(status_code=404, detail=f"{kind[:-1].capitalize()} not found")
    return PlainTextResponse(text, media_type="text/markdown")


@router.get("/guides", response_model=List[DocumentRef])
def list_guides() -> List[DocumentRef]:
    return documents.list_documents("guides")


@router.get("/guides/{slug}")
def get_guide(slug: str) -> PlainTextResponse:
    return _document_or_404("guides", slug)


@router.get("/examples", response_model=List[DocumentRef])
def list_examples() -> List[DocumentRef]:
    return documents.list_documents("examples")


@router.get("/examples/{slug}")
def get_example(slug: str) -> PlainTextResponse:
    return _document_or_404("examples", slug)
