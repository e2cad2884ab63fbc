"""
Simple Bookkeeping - Ledger Core

A personal ledger whose records live as JSON files in the user's own
Dropbox, with any number of separate books ("profiles").

DESIGN PRINCIPLES:
1. Unknown is never treated as absent
2. Fail early, fail visibly
3. Local edits survive a failed sync
4. Every remote-affecting step is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Simple Bookkeeping Team"
