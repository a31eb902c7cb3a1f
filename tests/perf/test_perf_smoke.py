from __future__ import annotations

import time

from catalog_import.services import run_import
from catalog_import.store import InMemoryRecordStore

"""Performance smoke test: a catalog-sized file through the in-memory store.

Budget is lenient so CI stays stable; it catches accidental quadratic work
in validation or the write passes.
"""

N_BASES = 300
VARIANTS_PER_BASE = 3


def test_import_throughput_smoke(csv_text, base_row, variant_row):
    rows = []
    for i in range(N_BASES):
        base_id = f"model{i:04d}"
        rows.append(base_row(base_id, spec_overview_seating="5"))
        for v in range(VARIANTS_PER_BASE):
            rows.append(variant_row(base_id, f"-v{v}", price_aud=str(40000 + v * 1000)))
    text = csv_text(rows)
    store = InMemoryRecordStore()

    start = time.perf_counter()
    first = run_import(text, "big.csv", None, store)
    second = run_import(text, "big.csv", None, store)
    elapsed = time.perf_counter() - start

    total = N_BASES * (1 + VARIANTS_PER_BASE)
    assert first.success and second.success
    assert first.stats.created == total
    assert second.stats.updated == total
    assert elapsed < 20.0, f"import too slow: {elapsed:.3f}s"
    throughput = (2 * total) / elapsed
    assert throughput > 100
