"""codex-notify: macOS desktop notifications for Codex CLI."""

APP_NAME = "codex-notify"
__version__ = "0.2.0"
