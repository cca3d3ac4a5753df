"""
Tests for account code generation (pure functions).

Covers:
- Fixed type prefixes
- First root / first child codes
- Increments derived from the previous sibling's code
- Capacity limits for root suffixes, child suffixes and code length
"""

import pytest

from coa_kernel.domain.codes import (
    CODE_MAX_LENGTH,
    next_child_code,
    next_root_code,
    type_prefix,
)
from coa_kernel.domain.values import AccountType
from coa_kernel.exceptions import (
    CapacityError,
    ChildCodeCapacityError,
    CodeLengthCapacityError,
    InvalidAccountTypeError,
    RootCodeCapacityError,
)


class TestTypePrefix:
    @pytest.mark.parametrize(
        "account_type,prefix",
        [
            (AccountType.ASSET, "1"),
            (AccountType.LIABILITY, "2"),
            (AccountType.EQUITY, "3"),
            (AccountType.REVENUE, "4"),
            (AccountType.EXPENSE, "5"),
        ],
    )
    def test_fixed_prefix_per_type(self, account_type, prefix):
        assert type_prefix(account_type) == prefix

    def test_accepts_strings(self):
        assert type_prefix("Revenue") == "4"

    def test_unknown_type_rejected(self):
        with pytest.raises(InvalidAccountTypeError) as exc_info:
            type_prefix("goodwill")
        assert exc_info.value.account_type == "goodwill"


class TestNextRootCode:
    def test_first_root_gets_minimum_suffix(self):
        assert next_root_code("asset", None) == "1000"
        assert next_root_code("expense", None) == "5000"

    def test_increments_and_repads(self):
        assert next_root_code("asset", "1000") == "1001"
        assert next_root_code("liability", "2009") == "2010"
        assert next_root_code("equity", "3099") == "3100"

    def test_last_suffix_is_allowed(self):
        assert next_root_code("asset", "1998") == "1999"

    def test_suffix_overflow_is_capacity_error(self):
        with pytest.raises(RootCodeCapacityError) as exc_info:
            next_root_code("asset", "1999")
        assert exc_info.value.account_type == "asset"
        assert exc_info.value.code == "ROOT_CODE_CAPACITY"
        assert isinstance(exc_info.value, CapacityError)


class TestNextChildCode:
    def test_first_child_appends_01(self):
        assert next_child_code("1000", None) == "100001"
        assert next_child_code("100001", None) == "10000101"

    def test_increments_previous_sibling(self):
        assert next_child_code("1000", "100001") == "100002"
        assert next_child_code("1000", "100009") == "100010"

    def test_suffix_spliced_onto_previous_sibling(self):
        # A longer parent code must not shift the suffix position.
        assert next_child_code("10000101", "1000010107") == "1000010108"

    def test_99th_child_is_allowed(self):
        assert next_child_code("1000", "100098") == "100099"

    def test_100th_child_is_capacity_error(self):
        with pytest.raises(ChildCodeCapacityError) as exc_info:
            next_child_code("1000", "100099")
        assert exc_info.value.parent_code == "1000"
        assert exc_info.value.code == "CHILD_CODE_CAPACITY"

    def test_code_length_limit(self):
        parent_code = "1" * (CODE_MAX_LENGTH - 1)
        with pytest.raises(CodeLengthCapacityError):
            next_child_code(parent_code, None)

    def test_code_at_length_limit_is_allowed(self):
        parent_code = "1" * (CODE_MAX_LENGTH - 2)
        assert len(next_child_code(parent_code, None)) == CODE_MAX_LENGTH

    def test_consecutive_codes_strictly_increase(self):
        codes = []
        current = None
        for _ in range(20):
            current = next_child_code("2000", current)
            codes.append(current)
        assert codes == sorted(codes)
        assert len(set(codes)) == len(codes)
