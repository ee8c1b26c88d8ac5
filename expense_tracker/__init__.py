"""
Expense Tracker - Source Package

A local-first personal finance tracker: recurring incomes and expenses,
category budgets and spending limits, kept per named profile.

DESIGN PRINCIPLES:
1. Every change is persisted the moment it is made
2. Bad input is ignored, never half-applied
3. Stored data always loads, filling missing fields with defaults
4. Every mutation and external call is auditable
5. Storage, OCR and sign-in are swappable boundaries
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
