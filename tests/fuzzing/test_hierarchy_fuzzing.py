"""
Property-based tests for the pure hierarchy core.

Hypothesis generates random chart shapes (each new account attaches to a
random existing account or becomes a root) and random amounts, and checks:
- Code order equals depth-first display order
- Every code is unique and extends its parent's code
- Roll-up balances of the roots sum to the sum of all own balances
- Exactly one of debit/credit must be strictly positive
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from coa_kernel.domain.balances import index_postings, summarize_tree
from coa_kernel.domain.codes import next_child_code, next_root_code
from coa_kernel.domain.dtos import AccountInfo, PostingInfo
from coa_kernel.domain.integrity import check_amount_exclusive
from coa_kernel.domain.tree import build_tree, iter_tree
from coa_kernel.domain.values import ZERO, AccountType
from coa_kernel.exceptions import ValidationError

money = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("99999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

chart_settings = settings(
    max_examples=60,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


@composite
def charts(draw):
    """A flat snapshot of accounts whose codes were allocated in creation order."""
    account_type = draw(st.sampled_from(list(AccountType)))
    size = draw(st.integers(min_value=1, max_value=20))
    accounts: list[AccountInfo] = []
    last_child: dict = {}
    last_root = None

    for _ in range(size):
        parent = None
        if accounts and draw(st.booleans()):
            parent = draw(st.sampled_from(accounts))

        if parent is None:
            code = next_root_code(account_type, last_root)
            last_root = code
        else:
            code = next_child_code(parent.code, last_child.get(parent.id))
            last_child[parent.id] = code

        accounts.append(AccountInfo(
            id=uuid4(),
            code=code,
            name=f"Account {code}",
            account_type=account_type,
            is_active=True,
            parent_id=parent.id if parent is not None else None,
            opening_balance=draw(money),
        ))

    return draw(st.permutations(accounts))


class TestTreeProperties:
    @given(charts())
    @chart_settings
    def test_code_order_is_display_order(self, accounts):
        codes = [node.code for node in iter_tree(build_tree(accounts))]

        assert len(codes) == len(accounts)
        assert len(set(codes)) == len(codes)
        assert codes == sorted(codes)

    @given(charts())
    @chart_settings
    def test_child_code_extends_parent(self, accounts):
        for node in iter_tree(build_tree(accounts)):
            for child in node.children:
                assert child.code.startswith(node.code)
                assert len(child.code) == len(node.code) + 2
                assert child.level == node.level + 1

    @given(charts(), st.lists(money, min_size=0, max_size=30))
    @chart_settings
    def test_rollups_conserve_balance(self, accounts, amounts):
        postings = [
            PostingInfo(
                id=uuid4(),
                account_id=accounts[i % len(accounts)].id,
                transaction_date=None,
                description="fuzz",
                debit=amount if i % 2 == 0 else ZERO,
                credit=amount if i % 2 == 1 else ZERO,
            )
            for i, amount in enumerate(amounts)
        ]

        summaries = summarize_tree(build_tree(accounts), index_postings(postings))

        expected = sum((a.opening_balance for a in accounts), ZERO) + sum(
            (p.debit - p.credit for p in postings), ZERO
        )
        assert sum((s.rollup_balance for s in summaries), ZERO) == expected


class TestAmountProperties:
    @given(money, money)
    @settings(chart_settings, max_examples=200)
    def test_exactly_one_side_positive(self, debit, credit):
        one_sided = (debit > ZERO) != (credit > ZERO)
        if one_sided:
            check_amount_exclusive(debit, credit)
        else:
            with pytest.raises(ValidationError):
                check_amount_exclusive(debit, credit)
