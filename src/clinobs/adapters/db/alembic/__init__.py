"""Packaged Alembic migration environment for CLINOBS."""
