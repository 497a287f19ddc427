"""文档工具：工具声明、结果信封与执行器。"""

from legal_skill.tools.definitions import ToolDef, ToolOutcome, ToolParam
from legal_skill.tools.executor import DocumentToolExecutor, default_tool_defs, document_tool_specs

__all__ = [
    "DocumentToolExecutor",
    "ToolDef",
    "ToolOutcome",
    "ToolParam",
    "default_tool_defs",
    "document_tool_specs",
]
