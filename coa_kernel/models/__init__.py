"""ORM models for the chart-of-accounts kernel."""

from coa_kernel.models.account import Account
from coa_kernel.models.posting import Posting

__all__ = [
    "Account",
    "Posting",
]
