"""Tool definitions for LLM function calling against the financial data store.

Each tool maps to one data-retrieval callback in ``DataFunctions``. Which
tools are offered depends on the query type the caller declares.
"""

from typing import Any

GET_PAYMENTS_SUMMARY_TOOL: dict[str, Any] = {
    "name": "getPaymentsSummary",
    "description": (
        "Get payroll payments with optional filters for date range, employee, "
        "department, and amount"
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "startDate": {"type": "string", "description": "Start date in YYYY-MM-DD format"},
            "endDate": {"type": "string", "description": "End date in YYYY-MM-DD format"},
            "employee": {"type": "string", "description": "Employee name to filter"},
            "department": {"type": "string", "description": "Department name to filter"},
            "minAmount": {"type": "number", "description": "Minimum payment amount"},
            "maxAmount": {"type": "number", "description": "Maximum payment amount"},
        },
        "required": [],
    },
}

GET_AR_AGING_DETAIL_TOOL: dict[str, Any] = {
    "name": "getARAgingDetail",
    "description": "Fetch detailed invoice records from the ar_aging_detail table",
    "input_schema": {
        "type": "object",
        "properties": {
            "customerId": {"type": "string", "description": "Optional customer ID to filter"},
        },
        "required": [],
    },
}

GET_FINANCIAL_DATA_TOOL: dict[str, Any] = {
    "name": "getFinancialData",
    "description": (
        "Retrieve general financial journal entries from the journal_entry_lines table"
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "startDate": {"type": "string", "description": "Start date in YYYY-MM-DD format"},
            "endDate": {"type": "string", "description": "End date in YYYY-MM-DD format"},
            "limit": {"type": "number", "description": "Maximum number of records to return"},
        },
        "required": [],
    },
}

ALL_TOOLS: list[dict[str, Any]] = [
    GET_PAYMENTS_SUMMARY_TOOL,
    GET_AR_AGING_DETAIL_TOOL,
    GET_FINANCIAL_DATA_TOOL,
]

TOOLS_BY_QUERY_TYPE: dict[str, list[dict[str, Any]]] = {
    "payroll": [GET_PAYMENTS_SUMMARY_TOOL],
    "ar_analysis": [GET_AR_AGING_DETAIL_TOOL],
    "financial_analysis": [GET_FINANCIAL_DATA_TOOL],
    "customer_analysis": [GET_FINANCIAL_DATA_TOOL],
}


def get_tools_for_query(query_type: str | None) -> list[dict[str, Any]]:
    """Tools offered for a query type; unknown types get none."""
    return TOOLS_BY_QUERY_TYPE.get(query_type or "", [])
