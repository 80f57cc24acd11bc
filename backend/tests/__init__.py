"""
pytest suite for the Soulbound Token Registry.

Test categories (markers):
- unit:        validators, rate limiter, auth helpers, config
- integration: registry service and ORM models on in-memory SQLite
- api:         FastAPI routes through httpx
- contract:    PyTeal compilation of the on-chain registry
"""
