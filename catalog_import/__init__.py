"""Vehicle catalog CSV import engine.

BASE / VARIANT vehicle records, CSV import with two-pass writes and archival
reconciliation, and the inheritance resolver used at read time.
"""

__version__ = "0.3.0"
