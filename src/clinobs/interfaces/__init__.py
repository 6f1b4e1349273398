"""Interfaces (application boundary) for CLINOBS.

Defines framework-free application contracts: the storage ports, the unit of
work, the evaluator and authorizer ports, and the small DTOs they exchange
with the service layer. Business rules stay out of this package.

Dependency rule: this package may import `clinobs.domain` only. It is imported
by `clinobs.service_layer`, `clinobs.adapters`, and `clinobs.bootstrap`.
"""
