"""Adapters for CLINOBS.

Concrete implementations of the ports in `clinobs.interfaces`: SQLAlchemy and
in-memory observation stores, units of work, the rule evaluator, and the
static authorizer.

Dependency rule: may import `clinobs.domain` and `clinobs.interfaces`, never
`clinobs.service_layer` or `clinobs.entrypoints`.
"""
