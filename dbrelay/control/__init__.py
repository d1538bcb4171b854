"""Transfer drivers and the command orchestrator."""
from .orchestrator import TransferClient
from .receiver import TableReceiver
from .schema_tool import SchemaTool, SchemaToolResult
from .sender import TableSender

__all__ = ["SchemaTool", "SchemaToolResult", "TableReceiver", "TableSender", "TransferClient"]
