"""Bootstrap (composition root) for CLINOBS.

Wires concrete adapters (engine, units of work, evaluator, authorizer) into
the `ObsService` and hands the result to entrypoints.

Import rules:
- Entry points import *this* package (not adapters/service_layer directly).
- This package may import every other layer and `clinobs.config`.
- Inner layers must not import `clinobs.bootstrap`.
"""

from .bootstrap import AppContainer, bootstrap, build_in_memory_service

__all__ = ["AppContainer", "bootstrap", "build_in_memory_service"]
