"""Infrastructure layer — database engine, schema, views, and the store.

This layer depends on stdlib and third-party libs (SQLAlchemy, Alembic).
It may import domain errors and models, but never services, commands, or output.
"""
