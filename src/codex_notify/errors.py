"""Exception taxonomy for codex-notify.

Only ``HelperUnavailableError`` and ``DialogCanceledError`` are recovered
internally; everything else ends the invocation with ``error: <message>``.
"""


class CodexNotifyError(Exception):
    """Base class for every error reported by the CLI."""


class MalformedPayloadError(CodexNotifyError):
    """Hook input was not valid JSON."""


class NoCapabilityAvailableError(CodexNotifyError):
    """Neither a rich notifier nor the osascript fallback could be used."""


class UnsupportedPlatformError(NoCapabilityAvailableError):
    """Notifications were requested on a platform other than macOS."""


class HelperUnavailableError(CodexNotifyError):
    """The popup helper could not be prepared or launched."""


class ActivationFailedError(CodexNotifyError):
    """The target application could not be activated."""


class KeySendFailedError(CodexNotifyError):
    """A synthetic keystroke could not be delivered."""


class DialogCanceledError(CodexNotifyError):
    """The chooser dialog was dismissed or timed out. Not a failure."""


class MissingTextError(CodexNotifyError):
    """`action submit` was invoked without ``--text``."""


class UnknownActionError(CodexNotifyError):
    """An action name outside open/approve/reject/choose/submit."""


class ConfigFileError(CodexNotifyError):
    """The Codex config file could not be read, patched or restored."""
