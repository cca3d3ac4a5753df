"""
Chart-of-Accounts Kernel

A hierarchical chart-of-accounts engine with:
- System-assigned hierarchical account codes
- Type-consistent, acyclic parent/child account trees
- Leaf-only postings with exclusive debit/credit amounts
- Derived (never stored) own and roll-up balances
"""

__version__ = "0.1.0"
