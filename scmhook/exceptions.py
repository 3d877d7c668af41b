"""Exception hierarchy shared by the hook, the webhook server and the services."""


class ScmHookError(Exception):
    """Base class for every error raised by scmhook."""


class RepositoryError(ScmHookError):
    """A git operation failed (missing object, corrupted history, git error)."""


class RepositoryOpenError(RepositoryError):
    """The repository could not be opened at all."""


class AuthenticationError(ScmHookError):
    """An inbound webhook request failed verification."""


class MalformedPayloadError(ScmHookError):
    """An inbound payload or hook line could not be understood."""


class TransportError(ScmHookError):
    """The notification transport could not deliver or could not be reached."""
