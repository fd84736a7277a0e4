class ToolError(Exception):
    """Base class for failures a tool reports back to the agent as an error result."""


class PrerequisiteMissingError(ToolError):
    """An external binary or daemon the tool depends on is unavailable."""


class AuthenticationError(ToolError):
    pass


class ExecutionTimeoutError(ToolError):
    pass


class ProcessFailedError(ToolError):
    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class TokenCommandError(ToolError):
    pass
