"""Exception taxonomy for the formatting pipeline.

Only FormatterNotFound is allowed to reach a caller. The dispatcher recovers
FormattingTimeout and EmptyResult locally, and the pipeline turns
MalformedInput into a failed result instead of raising.
"""


class PureTextError(Exception):
    """Base class for pipeline errors."""


class FormatterNotFound(PureTextError):
    """No walker is registered at all, not even the generic fallback."""

    def __init__(self, site_key: str = ""):
        self.site_key = site_key
        super().__init__(f"No formatter registered for '{site_key or 'unknown'}' and no fallback available")


class FormattingTimeout(PureTextError):
    """A walker did not finish within the allowed time."""

    def __init__(self, walker_name: str, timeout: float):
        self.walker_name = walker_name
        self.timeout = timeout
        super().__init__(f"Formatter '{walker_name}' timed out after {timeout:.1f}s")


class EmptyResult(PureTextError):
    """A walker produced nothing but whitespace."""

    def __init__(self, walker_name: str):
        self.walker_name = walker_name
        super().__init__(f"Formatter '{walker_name}' returned an empty result")


class MalformedInput(PureTextError):
    """The container node is missing or cannot be parsed."""


class WalkCancelled(PureTextError):
    """Raised inside a walker when its cancellation token is set."""
