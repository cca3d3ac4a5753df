"""Read-only query selectors for the chart-of-accounts kernel."""

from coa_kernel.selectors.account_selector import AccountSelector
from coa_kernel.selectors.base import BaseSelector
from coa_kernel.selectors.posting_selector import (
    PostingReport,
    PostingSelector,
    PostingStatistics,
)

__all__ = [
    "AccountSelector",
    "BaseSelector",
    "PostingReport",
    "PostingSelector",
    "PostingStatistics",
]
