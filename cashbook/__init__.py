"""
Cashbook - Source Package

A small-business financial control engine: bank accounts, sales,
payables (boletos), general expenses and the monthly reports derived
from them.

DESIGN PRINCIPLES:
1. Balances only move through the ledger
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Cashbook Team"
