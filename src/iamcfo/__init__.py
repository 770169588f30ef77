"""I AM CFO - financial reporting, AI CFO assistant and WasteX production log."""

__version__ = "0.1.0"

from iamcfo.assistant import CFOAssistant, VoiceSession
from iamcfo.clients import OpenAIClient
from iamcfo.config import configure_logging, get_settings
from iamcfo.production import LocalQueue, ProductionEntry, merge_entries
from iamcfo.production.sync import ProductionLog, ProductionUploader
from iamcfo.reports import ReportKind, ReportService
from iamcfo.state import AppState, AppStore
from iamcfo.tools import DataFunctions, SupabaseClient, ToolExecutor

__all__ = [
    # Version
    "__version__",
    # Production log
    "ProductionEntry",
    "LocalQueue",
    "merge_entries",
    "ProductionLog",
    "ProductionUploader",
    # Reports
    "ReportKind",
    "ReportService",
    # Assistant
    "CFOAssistant",
    "VoiceSession",
    "OpenAIClient",
    # Data store and tools
    "SupabaseClient",
    "DataFunctions",
    "ToolExecutor",
    # State
    "AppState",
    "AppStore",
    # Config
    "get_settings",
    "configure_logging",
]
