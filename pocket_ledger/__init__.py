"""
Pocket Ledger - Source Package

A small personal finance ledger: income and expense entries recorded
against a running balance, persisted to a flat text file.

DESIGN PRINCIPLES:
1. The trailing balance entry always equals income minus expenses
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
