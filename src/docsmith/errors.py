"""Error taxonomy for docsmith.

Errors raised before a response stream starts are turned into HTTP error
responses. Everything raised after that point is converted into wire
events and never crosses the framing boundary.
"""


class DocsmithError(Exception):
    """Base class for all docsmith errors."""


class InvalidRequest(DocsmithError):
    """The submitted message list is malformed."""


class MissingCredentials(DocsmithError):
    """An upstream API key is not configured."""


class UpstreamStreamError(DocsmithError):
    """The completion backend failed part way through a turn."""


class ToolExecutionFailure(DocsmithError):
    """A single tool call failed. Scoped to that call only."""


class ArgumentParseError(ToolExecutionFailure):
    """Tool-call arguments could not be parsed as a JSON object."""


class SearchError(DocsmithError):
    """The search backend returned an error."""
