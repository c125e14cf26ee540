"""Exception taxonomy for the chat backend and editing session."""


class WebAgentError(Exception):
    """Base exception for webagent."""

    status_code = 500
    public_message = "Internal server error"


class ConfigError(WebAgentError):
    """Raised when configuration is missing or invalid."""

    status_code = 503
    public_message = "Missing LLM credentials"


class ValidationError(WebAgentError):
    """Raised when a request body is malformed."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.public_message = message


class ModelResponseError(WebAgentError):
    """Raised when the model returns content we cannot use."""

    public_message = "Failed to process chat request"


class ClassificationParseError(ModelResponseError):
    """Image-need classification reply is not JSON or lacks needsImages."""


class GenerationParseError(ModelResponseError):
    """Content-generation reply is not a usable JSON object."""


class ChatRequestFailed(WebAgentError):
    """Transport failure (timeout, connection error, non-2xx) talking to the model provider."""

    public_message = "Failed to process chat request"


class UnsupportedActionError(WebAgentError):
    """A change record carries an action outside create/update/delete."""

    public_message = "Failed to process chat request"

    def __init__(self, action):
        super().__init__(f"unsupported change action: {action!r}")
        self.action = action


class SiteStoreError(WebAgentError):
    """Raised when the site persistence backend fails."""

    public_message = "Failed to access site storage"


class SiteNotFoundError(SiteStoreError):
    status_code = 404
    public_message = "Site not found"

    def __init__(self, site_id: str):
        super().__init__(f"site not found: {site_id}")
        self.site_id = site_id
