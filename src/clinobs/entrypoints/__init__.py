"""Entrypoints (inbound adapters) for CLINOBS.

Expose the observation service to the outside world. Currently only the
``clinobs`` command line. Entrypoints parse input, call `ObsService` via the
bootstrap, and render results.

Dependency rule: may import `clinobs.bootstrap`, `clinobs.domain` and
`clinobs.config`; avoid importing `clinobs.adapters` directly (the database
commands, which drive Alembic and the engine factory, are the exception).
"""
