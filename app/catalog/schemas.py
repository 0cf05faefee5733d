"""
Pydantic schema definitions for the catalog module.

The ``ToolRecord`` model captures the fields required to render a tool
card in the front‑end and to feed the chat assistant with catalog
context. Records are frozen: they are loaded once from the static data
files and never mutated afterwards. ``PaginatedTools`` bundles a page of
records with pagination metadata, and ``DocumentRef`` describes one of
the markdown guides or example projects.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolStatus(str, Enum):
    free = "free"
    paid = "paid"
    freemium = "freemium"


class ToolRecord(BaseModel):
    """A single catalog entry.

    ``tags`` keeps the order found in the data file. ``tutorial`` and
    ``example_project_link`` are optional learning links; ``popularity``
    is whatever score the data file carries, or ``None`` when absent.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    status: ToolStatus = ToolStatus.freemium
    link: str = ""
    tutorial: Optional[str] = None
    example_project_link: Optional[str] = None
    popularity: Optional[float] = None
    logo: Optional[str] = None


class PaginatedTools(BaseModel):
    """A wrapper for paginated results returned from the ``/tools`` endpoint."""

    page: int
    page_size: int
    total: int
    total_pages: int
    items: List[ToolRecord]


class DocumentRef(BaseModel):
    """A guide or example project identified by its filename."""

    slug: str
    filename: str
    title: str
