"""CLINOBS

The observation-management service of a clinical data repository.
It owns the lifecycle of discrete clinical observations (create, update,
void/unvoid, delete) and a uniform query surface over them, keeping the
void-versus-delete audit trail intact.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
