"""
Birthday & Gelt Tracker - Source Package

Keeps a family birthday list with Hebrew dates and upcoming Hebrew
birthdays, and computes the gelt (gift money) budget for a group of
children split into age bands.

DESIGN PRINCIPLES:
1. Validate first, flag for human verification instead of guessing
2. Fail early, fail visibly
3. No silent corrections or silently dropped rows
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Birthday & Gelt Tracker Team"
