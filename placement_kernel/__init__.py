"""
Placement Kernel

The workflow and ledger engine for an education-placement agency:
- Lead, Student and University Application state machines
- Field-level profile locks and whole-record document locks
- Commission triggering, payout, voiding and clawback
- Append-only ledger and hash-chained audit log
"""

__version__ = "0.1.0"
