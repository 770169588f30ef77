"""Tests for assistant data functions, tool definitions and the executor."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from iamcfo.tools.definitions import ALL_TOOLS, get_tools_for_query
from iamcfo.tools.executor import ToolExecutor
from iamcfo.tools.functions import DataFunctions
from iamcfo.tools.supabase_api import DataStoreError

from conftest import make_query

PAYMENTS = [
    {"first_name": "Ana", "last_name": "Diaz", "department": "Ops", "total_amount": 1200.5},
    {"first_name": "Ben", "last_name": "Ng", "department": "Ops", "total_amount": 800},
    {"first_name": "Cara", "last_name": "Diaz", "department": None, "total_amount": 100},
]


class TestDefinitions:
    def test_all_tools_have_schemas(self):
        names = {t["name"] for t in ALL_TOOLS}

        assert names == {"getPaymentsSummary", "getARAgingDetail", "getFinancialData"}
        assert all(t["input_schema"]["type"] == "object" for t in ALL_TOOLS)

    def test_tools_by_query_type(self):
        assert [t["name"] for t in get_tools_for_query("payroll")] == ["getPaymentsSummary"]
        assert [t["name"] for t in get_tools_for_query("customer_analysis")] == ["getFinancialData"]
        assert get_tools_for_query("general") == []
        assert get_tools_for_query(None) == []


class TestDataFunctions:
    @pytest.mark.asyncio
    async def test_payments_summary_totals(self, mock_supabase):
        query = make_query(PAYMENTS)
        mock_supabase.table.return_value = query

        result = await DataFunctions(mock_supabase).get_payments_summary(
            startDate="2025-01-01", endDate="2025-01-31", minAmount=50
        )

        query.gte.assert_any_call("date", "2025-01-01")
        query.gte.assert_any_call("total_amount", 50)
        query.lte.assert_called_once_with("date", "2025-01-31")
        assert result["count"] == 3
        assert result["total_amount"] == 2100.5
        assert result["by_department"] == {"Ops": 2000.5, "Unassigned": 100.0}

    @pytest.mark.asyncio
    async def test_payments_employee_filter_matches_full_name(self, mock_supabase):
        mock_supabase.table.return_value = make_query(PAYMENTS)

        result = await DataFunctions(mock_supabase).get_payments_summary(employee="diaz")

        assert result["count"] == 2
        assert {p["first_name"] for p in result["payments"]} == {"Ana", "Cara"}

    @pytest.mark.asyncio
    async def test_ar_aging_detail_for_customer(self, mock_supabase):
        query = make_query([{"customer": "Acme", "open_balance": "250.00"}])
        mock_supabase.table.return_value = query

        result = await DataFunctions(mock_supabase).get_ar_aging_detail(customerId="Acme")

        mock_supabase.table.assert_called_with("ar_aging_detail")
        query.eq.assert_called_once_with("customer", "Acme")
        assert result["total_open_balance"] == 250.0

    @pytest.mark.asyncio
    async def test_financial_data_limit_is_capped(self, mock_supabase):
        query = make_query([])
        mock_supabase.table.return_value = query

        await DataFunctions(mock_supabase).get_financial_data(limit=5000)

        query.limit.assert_called_once_with(1000)

    @pytest.mark.asyncio
    async def test_financial_data_default_limit(self, mock_supabase):
        query = make_query([])
        mock_supabase.table.return_value = query

        result = await DataFunctions(mock_supabase).get_financial_data(startDate="2025-01-01")

        query.limit.assert_called_once_with(100)
        query.order.assert_called_once_with("date", ascending=False)
        assert result == {"entries": [], "count": 0}


class TestToolExecutor:
    @pytest.fixture
    def functions(self):
        functions = MagicMock(spec=DataFunctions)
        functions.get_payments_summary = AsyncMock(return_value={"count": 0})
        functions.get_ar_aging_detail = AsyncMock(return_value={"count": 0})
        functions.get_financial_data = AsyncMock(return_value={"count": 0})
        return functions

    @pytest.mark.asyncio
    async def test_dispatches_by_name(self, functions):
        executor = ToolExecutor(functions)

        result = await executor.execute("getARAgingDetail", {"customerId": "Acme"})

        assert result == {"success": True, "result": {"count": 0}}
        functions.get_ar_aging_detail.assert_awaited_once_with(customerId="Acme")

    @pytest.mark.asyncio
    async def test_unknown_tool(self, functions):
        result = await ToolExecutor(functions).execute("deleteEverything", {})

        assert result["success"] is False
        assert "Function deleteEverything not found" in result["error"]

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, functions):
        functions.get_financial_data.side_effect = TypeError("unexpected keyword argument 'foo'")

        result = await ToolExecutor(functions).execute("getFinancialData", {"foo": 1})

        assert result["success"] is False
        assert "Invalid arguments" in result["error"]

    @pytest.mark.asyncio
    async def test_data_store_error_carries_status(self, functions):
        functions.get_payments_summary.side_effect = DataStoreError(
            "permission denied", status_code=401, details={"code": "42501"}
        )

        result = await ToolExecutor(functions).execute("getPaymentsSummary", {})

        assert result == {
            "success": False,
            "error": "permission denied",
            "status_code": 401,
            "details": {"code": "42501"},
        }

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported(self, functions):
        functions.get_financial_data.side_effect = RuntimeError("boom")

        result = await ToolExecutor(functions).execute("getFinancialData", {})

        assert result == {"success": False, "error": "boom"}
