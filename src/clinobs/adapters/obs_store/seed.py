"""Mime types every CLINOBS store starts with.

The migration inserts these rows and the in-memory store preloads them, so
both backends agree on ids.
"""

from clinobs.domain.obs import MimeType

DEFAULT_MIME_TYPES: tuple[MimeType, ...] = (
    MimeType(1, "text/plain", "Plain text"),
    MimeType(2, "text/xml", "XML document"),
    MimeType(3, "application/pdf", "PDF document"),
    MimeType(4, "image/jpeg", "JPEG image"),
    MimeType(5, "image/png", "PNG image"),
    MimeType(6, "image/gif", "GIF image"),
)
