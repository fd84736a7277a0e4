import json
from typing import Any

from loguru import logger

from pi_extensions.errors import PrerequisiteMissingError, ProcessFailedError
from pi_extensions.tool import ToolResult
from pi_extensions.tools.process import run_process

_JSON_FIELDS = "path,repository,sha,url,textMatches"
_DEFAULT_LIMIT = 10
_MAX_LIMIT = 100

_GH_NOT_INSTALLED = "GitHub CLI (gh) is not installed or not in PATH. Install it from https://cli.github.com/"
_GH_NOT_AUTHENTICATED = "Not authenticated with GitHub. Run `gh auth login` to authenticate."

# input key -> gh flag
_FILTER_FLAGS = [
    ("language", "--language"),
    ("owner", "--owner"),
    ("repo", "--repo"),
    ("extension", "--extension"),
    ("filename", "--filename"),
]


def build_gh_args(tool_input: dict[str, Any]) -> list[str]:
    args = ["gh", "search", "code", tool_input["query"]]
    for key, flag in _FILTER_FLAGS:
        value = tool_input.get(key)
        if value:
            args.extend([flag, str(value)])

    limit = min(int(tool_input.get("limit") or _DEFAULT_LIMIT), _MAX_LIMIT)
    args.extend(["--limit", str(limit)])
    args.extend(["--json", _JSON_FIELDS])
    return args


async def run_gh_search(args: list[str]) -> list[dict]:
    result = await run_process(args, not_found_message=_GH_NOT_INSTALLED)
    if result.returncode != 0:
        raise ProcessFailedError(
            result.stderr.strip() or f"gh exited with code {result.returncode}",
            returncode=result.returncode,
            stderr=result.stderr,
        )

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as ex:
        raise ProcessFailedError(f"Failed to parse gh output: {result.stdout}") from ex


def _clean_fragment(fragment: str) -> str:
    lines = (line.strip() for line in fragment.splitlines())
    return "\n".join(line for line in lines if line)


def format_results(results: list[dict]) -> str:
    if not results:
        return "No results found."

    by_repo: dict[str, list[dict]] = {}
    for item in results:
        repo_name = (item.get("repository") or {}).get("fullName", "?")
        by_repo.setdefault(repo_name, []).append(item)

    lines = [f"Found {len(results)} result(s) in {len(by_repo)} repo(s):", ""]
    index = 0
    for repo_name, items in by_repo.items():
        lines.append(f"## {repo_name}")
        lines.append("")
        for item in items:
            index += 1
            lines.append(f"### {index}. {repo_name}/{item.get('path', '?')}")
            lines.append(f"**URL:** {item.get('url', '')}")

            fragments = [_clean_fragment(m.get("fragment", "")) for m in item.get("textMatches") or []]
            fragments = [f for f in fragments if f]
            if fragments:
                lines.append("**Matches:**")
                for fragment in fragments:
                    lines.append("```")
                    lines.append(fragment)
                    lines.append("```")
            lines.append("")

    return "\n".join(lines).rstrip()


class GitHubSearchCodeTool:
    @property
    def name(self) -> str:
        return "github_search_code"

    @property
    def description(self) -> str:
        return (
            "Search code across GitHub repositories using the GitHub API (via gh CLI).\n\n"
            "Useful for:\n"
            "- Finding usage examples of APIs, libraries, or patterns\n"
            "- Discovering how others implement specific functionality\n"
            "- Finding configuration examples (Nix, Docker, CI/CD)\n"
            "- Locating code in specific languages or repositories\n\n"
            "Search syntax: https://docs.github.com/search-github/searching-on-github/searching-code"
        )

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": (
                        "Search query. Supports GitHub search syntax "
                        "(e.g., 'useState lang:typescript', 'filename:flake.nix nixpkgs')"
                    ),
                },
                "language": {
                    "type": "string",
                    "description": "Filter by programming language (e.g., 'python', 'typescript', 'nix')",
                },
                "owner": {
                    "type": "string",
                    "description": "Filter by repository owner (e.g., 'nixos', 'microsoft')",
                },
                "repo": {
                    "type": "string",
                    "description": "Filter by specific repository (e.g., 'nixos/nixpkgs')",
                },
                "extension": {
                    "type": "string",
                    "description": "Filter by file extension (e.g., 'ts', 'nix', 'py')",
                },
                "filename": {
                    "type": "string",
                    "description": "Filter by filename (e.g., 'flake.nix', 'Dockerfile')",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of results (default: 10, max: 100)",
                },
            },
            "required": ["query"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> ToolResult:
        try:
            args = build_gh_args(tool_input)
            logger.info(f"Searching GitHub for: {tool_input['query']}")
            results = await run_gh_search(args)
            return ToolResult(format_results(results))
        except PrerequisiteMissingError:
            return ToolResult(_GH_NOT_INSTALLED, is_error=True)
        except Exception as ex:
            msg = str(ex)
            if "not logged in" in msg or "auth login" in msg:
                return ToolResult(_GH_NOT_AUTHENTICATED, is_error=True)
            logger.error(f"github_search_code failed: {msg}")
            return ToolResult(f"GitHub search failed: {msg}", is_error=True)
