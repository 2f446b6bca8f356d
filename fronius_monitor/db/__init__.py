"""
Database layer: ORM models, async session factory and Alembic migrations.
"""
