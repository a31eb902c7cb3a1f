from __future__ import annotations

from ..models.import_batch import ImportResult

"""SUMMARY line rendering.

Format (one line, space separated key=value)::

    SUMMARY import=<id> file=<name> success=<true|false> rows=<n> base=<n>
    variant=<n> created=<n> updated=<n> archived=<n> errors=<n>

Spaces in the file name are replaced by "_" so the line stays splittable.
"""

__all__ = [
    "render_summary_line",
]


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for one import result.

    Examples:
        >>> from catalog_import.models import ImportBatch, ImportResult, ImportStats
        >>> stats = ImportStats(total_rows=3, base_rows=2, variant_rows=1, created=3)
        >>> batch = ImportBatch(id="imp-1", created_at="2024-01-01T00:00:00Z",
        ...                     created_by=None, file_name="cars.csv", stats=stats)
        >>> render_summary_line(ImportResult(batch=batch, success=True, stats=stats, errors=[]))
        'SUMMARY import=imp-1 file=cars.csv success=true rows=3 base=2 variant=1 created=3 updated=0 archived=0 errors=0'
    """
    s = result.stats
    file_name = result.batch.file_name.replace(" ", "_") or "-"
    return (
        f"SUMMARY import={result.batch.id} "
        f"file={file_name} "
        f"success={'true' if result.success else 'false'} "
        f"rows={s.total_rows} "
        f"base={s.base_rows} "
        f"variant={s.variant_rows} "
        f"created={s.created} "
        f"updated={s.updated} "
        f"archived={s.archived} "
        f"errors={s.errors}"
    )
