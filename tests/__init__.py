"""
BookNook Test Suite

Tests are organized into:
- unit/: Catalog store and schema tests against a temporary SQLite file
- integration/: API tests through the ASGI app
"""
