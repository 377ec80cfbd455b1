"""Content search REST API package.

Sub-modules expose FastAPI routers:
- search: ranked cross-entity search and autocomplete suggestions
"""
