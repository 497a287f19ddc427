from typing import Any, Callable, Dict, List, Optional, Union
from datetime import datetime, timezone
from pathlib import Path

from legal_skill.documents import UnsupportedDocumentError, extract_text, is_supported_document
from legal_skill.infrastructure.logging.logger import logger
from legal_skill.domain.models import ToolSpec
from .definitions import ToolDef, ToolOutcome, ToolParam


ToolFunc = Callable[[Dict[str, Any]], ToolOutcome]
MAX_LIST_RESULTS = 500

READ_DOCUMENT = "read_document"
LIST_DOCUMENTS = "list_documents"
GET_DOCUMENT_INFO = "get_document_info"


class DocumentToolExecutor:
    """执行文档工具。业务失败（文件不存在、参数错误等）从不抛异常，而是返回 success=False。"""

    def __init__(self, workspace_root: Optional[Union[str, Path]] = None):
        root = _coerce_root(workspace_root)
        self._tools: Dict[str, ToolFunc] = {
            READ_DOCUMENT: _make_read_document_tool(root),
            LIST_DOCUMENTS: _make_list_documents_tool(root),
            GET_DOCUMENT_INFO: _make_document_info_tool(root),
        }

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    def run(self, name: str, arguments: Dict[str, Any]) -> ToolOutcome:
        func = self._tools.get(name)
        if not func:
            return ToolOutcome.failure(f"Unknown tool: {name}")
        if not isinstance(arguments, dict):
            return ToolOutcome.failure(f"Arguments for {name} must be an object")
        try:
            return func(arguments)
        except Exception as exc:  # 解析器异常（损坏的 PDF 等）同样作为工具失败回传
            logger.error("Tool execution failed", extra={"extra": {"tool_name": name, "error": str(exc)}})
            return ToolOutcome.failure(str(exc))

    def execute(self, name: str, arguments: Dict[str, Any]) -> str:
        """执行工具并返回 JSON 字符串（{success, ...} 或 {success: false, error}）。"""

        return self.run(name, arguments).to_json()


def _coerce_root(root: Optional[Union[str, Path]]) -> Optional[Path]:
    if root is None:
        return None
    return Path(root).expanduser().resolve()


def _resolve_path(raw: str, root: Optional[Path]) -> Path:
    candidate = Path(raw.strip()).expanduser()
    if not candidate.is_absolute():
        candidate = (root or Path.cwd()) / candidate
    resolved = candidate.resolve()
    if root and not _is_within_root(resolved, root):
        raise PermissionError(f"Path outside workspace: {resolved}")
    return resolved


def _is_within_root(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def _path_argument(args: Dict[str, Any], key: str, tool_name: str) -> Optional[str]:
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        logger.warning(
            "Tool called with invalid input",
            extra={"extra": {"tool_name": tool_name, "arguments": args}},
        )
        return None
    return value


def _file_type(path: Path) -> str:
    return path.suffix.lower().lstrip(".")


def _make_read_document_tool(root: Optional[Path]) -> ToolFunc:
    def _run(args: Dict[str, Any]) -> ToolOutcome:
        raw = _path_argument(args, "path", READ_DOCUMENT)
        if raw is None:
            return ToolOutcome.failure(
                'Missing or invalid "path" argument. You must provide the "path" to the file.'
            )
        path = _resolve_path(raw, root)
        if not path.exists():
            return ToolOutcome.failure(f"File not found: {path}")
        if not is_supported_document(path):
            return ToolOutcome.failure("Unsupported file type")
        try:
            doc = extract_text(path)
        except UnsupportedDocumentError:
            return ToolOutcome.failure("Unsupported file type")
        return ToolOutcome(success=True, text=doc.text, page_count=doc.page_count)

    return _run


def _make_list_documents_tool(root: Optional[Path]) -> ToolFunc:
    def _run(args: Dict[str, Any]) -> ToolOutcome:
        raw = _path_argument(args, "directory", LIST_DOCUMENTS)
        if raw is None:
            return ToolOutcome.failure('Missing or invalid "directory" argument.')
        base = _resolve_path(raw, root)
        if not base.is_dir():
            return ToolOutcome.failure(f"Directory not found: {base}")
        pattern = "**/*" if bool(args.get("recursive", False)) else "*"
        documents: List[Dict[str, Any]] = []
        for path in sorted(base.glob(pattern)):
            if path.is_file() and is_supported_document(path):
                documents.append({
                    "name": path.name,
                    "path": str(path),
                    "type": _file_type(path),
                    "size": path.stat().st_size,
                })
                if len(documents) >= MAX_LIST_RESULTS:
                    break
        return ToolOutcome(success=True, data={"count": len(documents), "documents": documents})

    return _run


def _make_document_info_tool(root: Optional[Path]) -> ToolFunc:
    def _run(args: Dict[str, Any]) -> ToolOutcome:
        raw = _path_argument(args, "path", GET_DOCUMENT_INFO)
        if raw is None:
            return ToolOutcome.failure('Missing or invalid "path" argument.')
        path = _resolve_path(raw, root)
        if not path.exists():
            return ToolOutcome.failure(f"File not found: {path}")
        stat = path.stat()
        return ToolOutcome(success=True, data={
            "name": path.name,
            "path": str(path),
            "type": _file_type(path),
            "size": stat.st_size,
            "lastModified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        })

    return _run


def default_tool_defs() -> List[ToolDef]:
    return [
        ToolDef(
            name=READ_DOCUMENT,
            description=(
                "Read and extract text content from a document file (PDF, DOCX, TXT, MD). "
                "Use this to read contracts, NDAs, agreements, and other legal documents."
            ),
            params={
                "path": ToolParam(
                    name="path",
                    description="Absolute or relative path to the document file",
                    required=True,
                    schema={"type": "string"},
                )
            },
        ),
        ToolDef(
            name=LIST_DOCUMENTS,
            description=(
                "List all readable documents (PDF, DOCX, TXT, MD) in a directory. "
                "Use this to discover available documents for review."
            ),
            params={
                "directory": ToolParam(
                    name="directory",
                    description="Path to the directory to list documents from",
                    required=True,
                    schema={"type": "string"},
                ),
                "recursive": ToolParam(
                    name="recursive",
                    description="Whether to search subdirectories recursively",
                    required=False,
                    schema={"type": "boolean"},
                ),
            },
        ),
        ToolDef(
            name=GET_DOCUMENT_INFO,
            description=(
                "Get metadata information about a document file (size, type, last modified) "
                "without reading its full content."
            ),
            params={
                "path": ToolParam(
                    name="path",
                    description="Path to the document file",
                    required=True,
                    schema={"type": "string"},
                )
            },
        ),
    ]


def document_tool_specs() -> List[ToolSpec]:
    return [d.to_spec() for d in default_tool_defs()]
