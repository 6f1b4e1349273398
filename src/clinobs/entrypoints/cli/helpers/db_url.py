"""Render database URLs for display with the password hidden.

Examples:
    ```bash
    >>> sanitize_url("postgresql+psycopg://clinic:s3cr3t@db:5432/clinobs")
    'postgresql+psycopg://clinic:***@db:5432/clinobs'
    ```

Caveats:
    - Only the password component is hidden; secrets in query parameters
      (``?password=...``) are shown as given.
"""

from sqlalchemy.engine import make_url


def sanitize_url(url: str) -> str:
    """Return `url` with its password replaced by ``***``."""
    return make_url(url).render_as_string(hide_password=True)
