"""Domain layer for CLINOBS.

Contains the business vocabulary: the observation entity, its typed values,
the referenced subject/concept/location/encounter value objects, the
person-type flag set, and the error hierarchy shared by every layer. This
package is deliberately technology-agnostic.

Dependency rule: do not import from `clinobs.adapters` or `clinobs.entrypoints`.
"""
