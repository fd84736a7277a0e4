import json
from typing import Any

from loguru import logger

from pi_extensions.errors import ProcessFailedError
from pi_extensions.tool import ToolResult
from pi_extensions.tools.process import run_process

_DEFAULT_LIMIT = 50
_CONTEXT_LINES = "2"

# ast-grep exits 1 when nothing matched
_ACCEPTED_EXIT_CODES = {0, 1}

_NOT_INSTALLED = "ast-grep not found. Install from https://ast-grep.github.io"


def build_ast_grep_args(tool_input: dict[str, Any]) -> list[str]:
    args = ["ast-grep", "run", "--pattern", tool_input["pattern"], "--json=compact"]

    lang = tool_input.get("lang")
    if lang:
        args.extend(["--lang", lang])

    for glob in tool_input.get("globs") or []:
        args.extend(["--globs", glob])

    if tool_input.get("context"):
        args.extend(["--context", _CONTEXT_LINES])

    paths = tool_input.get("paths") or []
    args.extend(paths if paths else ["."])
    return args


async def run_ast_grep(args: list[str], cwd: str | None) -> list[dict]:
    result = await run_process(args, cwd=cwd, not_found_message=_NOT_INSTALLED)
    if result.returncode not in _ACCEPTED_EXIT_CODES:
        raise ProcessFailedError(
            result.stderr.strip() or f"ast-grep exited with code {result.returncode}",
            returncode=result.returncode,
            stderr=result.stderr,
        )

    if not result.stdout.strip():
        return []

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as ex:
        raise ProcessFailedError(f"Failed to parse ast-grep output: {result.stdout}") from ex


def format_matches(matches: list[dict], show_context: bool) -> str:
    if not matches:
        return "No matches found."

    by_file: dict[str, list[dict]] = {}
    for match in matches:
        by_file.setdefault(match.get("file", "?"), []).append(match)

    lines = [f"Found {len(matches)} match(es) in {len(by_file)} file(s):", ""]
    for file, file_matches in by_file.items():
        lines.append(f"### {file}")
        lines.append("")
        for match in file_matches:
            start = match.get("range", {}).get("start", {})
            lines.append(f"**Line {start.get('line', '?')}:{start.get('column', '?')}**")

            body = match.get("lines", "").rstrip() if show_context else match.get("text", "")
            lines.append("```")
            lines.append(body)
            lines.append("```")

            meta_variables = match.get("metaVariables") or {}
            if meta_variables:
                captures = ", ".join(f"{name}=`{var.get('text', '')}`" for name, var in meta_variables.items())
                lines.append(f"Captures: {captures}")
            lines.append("")

    return "\n".join(lines).rstrip()


class AstGrepTool:
    def __init__(self, working_directory: str | None = None):
        self._cwd = working_directory

    @property
    def name(self) -> str:
        return "ast_grep"

    @property
    def description(self) -> str:
        return (
            "Search code using AST patterns with ast-grep. More powerful than text search "
            "because it understands code structure.\n\n"
            "Pattern syntax:\n"
            "- $NAME matches any single AST node and captures it\n"
            "- $$$NAME matches zero or more nodes (spread)\n"
            "- Literal code matches exactly\n\n"
            "Examples:\n"
            "- `console.log($MSG)` - find console.log calls\n"
            "- `function $NAME($$$ARGS) { $$$BODY }` - find function declarations\n"
            "- `if ($COND) { $$$THEN }` - find if statements\n"
            "- `import $NAME from '$PATH'` - find imports\n\n"
            "Languages: javascript, typescript, python, rust, go, java, c, cpp, etc."
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "pattern": {
                    "type": "string",
                    "description": "AST pattern to search for. Use $VAR for wildcards, $$$ for spread.",
                },
                "lang": {
                    "type": "string",
                    "description": "Language (e.g., typescript, python, rust). Auto-detected if not specified.",
                },
                "paths": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Paths to search (default: current directory)",
                },
                "globs": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Glob patterns to include/exclude (e.g., '*.ts', '!node_modules')",
                },
                "context": {
                    "type": "boolean",
                    "description": "Show surrounding context lines (default: false)",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of matches to return (default: 50)",
                },
            },
            "required": ["pattern"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        try:
            args = build_ast_grep_args(tool_input)
            logger.info(f"Searching for pattern: {tool_input['pattern']}")
            matches = await run_ast_grep(args, self._cwd)

            limit = tool_input.get("limit")
            limit = _DEFAULT_LIMIT if limit is None else int(limit)
            if len(matches) > limit:
                matches = matches[:limit]

            return ToolResult(format_matches(matches, bool(tool_input.get("context"))))
        except Exception as ex:
            logger.error(f"ast_grep failed: {ex}")
            return ToolResult(f"ast-grep search failed: {ex}", is_error=True)
