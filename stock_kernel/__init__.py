"""
Stock Kernel - append-only stock ledger core.

Holds the three transaction logs (opening stock, goods received, issues):
- Validated, append-only writes
- Correction by compensating reversal entries
- Single-snapshot per-item reads
- Deterministic time via an injected clock
"""

__version__ = "0.1.0"
