"""Data store client and assistant tools for I AM CFO."""

from iamcfo.tools.definitions import (
    ALL_TOOLS,
    TOOLS_BY_QUERY_TYPE,
    get_tools_for_query,
)
from iamcfo.tools.executor import ToolExecutionError, ToolExecutor
from iamcfo.tools.functions import DataFunctions
from iamcfo.tools.supabase_api import (
    AuthenticationError,
    DataStoreError,
    RateLimitError,
    SupabaseClient,
)

__all__ = [
    # Data store client
    "SupabaseClient",
    "DataStoreError",
    "AuthenticationError",
    "RateLimitError",
    # Tool definitions
    "ALL_TOOLS",
    "TOOLS_BY_QUERY_TYPE",
    "get_tools_for_query",
    # Tool execution
    "DataFunctions",
    "ToolExecutor",
    "ToolExecutionError",
]
