"""Tool executor that bridges LLM tool calls to the data functions."""

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from iamcfo.tools.functions import DataFunctions
from iamcfo.tools.supabase_api import DataStoreError

logger = structlog.get_logger(__name__)

ToolHandler = Callable[..., Awaitable[dict[str, Any]]]


class ToolExecutionError(Exception):
    """Error during tool execution."""

    def __init__(self, tool_name: str, message: str, details: Any = None):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name
        self.details = details


class ToolExecutor:
    """Executes LLM tool calls against the data store.

    Never raises for a tool call: unknown names and handler failures come
    back as ``{"success": False, "error": ...}`` so the model can see them.
    """

    def __init__(self, functions: DataFunctions):
        self.functions = functions
        self._tool_handlers: dict[str, ToolHandler] = {
            "getPaymentsSummary": functions.get_payments_summary,
            "getARAgingDetail": functions.get_ar_aging_detail,
            "getFinancialData": functions.get_financial_data,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._tool_handlers)

    async def _run(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        handler = self._tool_handlers.get(tool_name)
        if not handler:
            raise ToolExecutionError(tool_name, f"Function {tool_name} not found")
        try:
            return await handler(**arguments)
        except TypeError as e:
            raise ToolExecutionError(tool_name, f"Invalid arguments: {e}", arguments) from e

    async def execute(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a tool call and return the result."""
        logger.info("executing_tool", tool=tool_name, args=arguments)

        try:
            result = await self._run(tool_name, arguments)
            logger.info("tool_executed", tool=tool_name, success=True)
            return {"success": True, "result": result}
        except ToolExecutionError as e:
            logger.warning("tool_rejected", tool=tool_name, error=str(e))
            return {"success": False, "error": str(e)}
        except DataStoreError as e:
            logger.warning(
                "tool_api_error",
                tool=tool_name,
                status=e.status_code,
                details=e.details,
            )
            return {
                "success": False,
                "error": str(e),
                "status_code": e.status_code,
                "details": e.details,
            }
        except Exception as e:
            logger.exception("tool_execution_error", tool=tool_name)
            return {"success": False, "error": str(e)}
