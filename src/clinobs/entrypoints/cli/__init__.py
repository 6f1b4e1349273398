"""The ``clinobs`` command line."""
