"""
Write services for the chart-of-accounts kernel.

Services flush within the caller's transaction; ChartOfAccountsService is
the facade that owns commit and rollback.
"""

from coa_kernel.services.account_service import AccountService
from coa_kernel.services.base import BaseService
from coa_kernel.services.chart_service import ChartOfAccountsService
from coa_kernel.services.code_allocator import CodeAllocator, CodeScope, scope_key_for
from coa_kernel.services.posting_service import PostingService

__all__ = [
    "AccountService",
    "BaseService",
    "ChartOfAccountsService",
    "CodeAllocator",
    "CodeScope",
    "PostingService",
    "scope_key_for",
]
