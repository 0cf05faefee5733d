"""
Catalog package for the tool catalog API.

This package contains the schemas, the in-memory store and the route
definitions that expose the tool catalog, its categories, and the
markdown guides and example projects. The catalog is loaded from the
static JSON documents in the data directory when the package is first
imported.
"""

from .router import router as catalog_router  # noqa: F401
