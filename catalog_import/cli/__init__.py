"""Command line interface (``python -m catalog_import.cli``)."""
