"""codex-notify command line.

    codex-notify init [--replace] [--config path]
    codex-notify doctor [--config path]
    codex-notify test [message...]
    codex-notify hook [json-payload]
    codex-notify action <open|approve|reject|choose|submit> [--thread-id id] [--text value]
    codex-notify uninstall [--restore-config | --no-restore-config] [--config path]
"""

from __future__ import annotations

import argparse
import sys
from typing import IO, NoReturn

from codex_notify import APP_NAME, __version__
from codex_notify.actions.dispatcher import ActionDispatcher, parse_action
from codex_notify.config import NotifySettings, get_settings
from codex_notify.errors import CodexNotifyError
from codex_notify.hook.choices import build_action_command, resolve
from codex_notify.hook.payload import interpret, read_hook_input
from codex_notify.install.codex_config import run_init, run_uninstall
from codex_notify.install.doctor import run_doctor
from codex_notify.logger import configure_logging, logger
from codex_notify.model.models import Action, NotificationRequest
from codex_notify.ui.notifications import get_notification_service

USAGE = f"""{APP_NAME}: macOS desktop notifications for Codex CLI

Usage:
  {APP_NAME} init [--replace] [--config path]
  {APP_NAME} doctor [--config path]
  {APP_NAME} test [message]
  {APP_NAME} hook [json-payload]
  {APP_NAME} action <open|approve|reject|choose|submit> [--thread-id id] [--text value]
  {APP_NAME} uninstall [--restore-config | --no-restore-config] [--config path]

Commands:
  init       Add notify hook to Codex config with timestamped backup.
  doctor     Validate runtime requirements and config wiring.
  test       Send a local test notification.
  hook       Receive Codex notify payload and raise macOS notification.
  action     Execute click action (open terminal / choose / submit text / send approve or reject keys).
  uninstall  Restore config from latest backup created by init.
"""

COMMANDS = ("init", "doctor", "test", "hook", "action", "uninstall")
HELP_WORDS = ("help", "-h", "--help")

TEST_TITLE = "Codex Notify"
TEST_GROUP = "codex-notify-test"
TEST_MESSAGE = "Codex通知テスト"


class UsageError(CodexNotifyError):
    """Bad command line."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog=APP_NAME, add_help=False)
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {__version__}")
    sub = parser.add_subparsers(dest="command")

    init = sub.add_parser("init", add_help=False)
    init.add_argument("--replace", action="store_true")
    init.add_argument("--config", default="")

    doctor = sub.add_parser("doctor", add_help=False)
    doctor.add_argument("--config", default="")

    test = sub.add_parser("test", add_help=False)
    test.add_argument("message", nargs="*")

    hook = sub.add_parser("hook", add_help=False)
    hook.add_argument("payload", nargs="?")

    action = sub.add_parser("action", add_help=False)
    action.add_argument("name", nargs="?")
    action.add_argument("--thread-id", default="")
    action.add_argument("--text", default="")

    uninstall = sub.add_parser("uninstall", add_help=False)
    uninstall.add_argument(
        "--restore-config", action=argparse.BooleanOptionalAction, default=True
    )
    uninstall.add_argument("--config", default="")
    return parser


def print_usage(stream: IO[str]) -> None:
    stream.write(USAGE)


# ----------------------------------------------------------------------
# commands


def cmd_hook(args: argparse.Namespace, settings: NotifySettings) -> None:
    raw = read_hook_input([args.payload] if args.payload is not None else [])
    event = interpret(raw)
    choices = resolve(event, settings)
    surfaces = get_notification_service().present(event, choices)
    logger.info(
        "hook %s (thread=%s) -> %s",
        event.event_name or "-",
        event.thread_id or "-",
        ", ".join(s.value for s in surfaces),
    )


def cmd_action(args: argparse.Namespace, settings: NotifySettings) -> None:
    if not args.name:
        msg = "action requires one of: open, approve, reject, choose, submit"
        raise UsageError(msg)
    action = parse_action(args.name)
    ActionDispatcher(settings).dispatch(action, args.thread_id.strip() or None, args.text)


def cmd_test(args: argparse.Namespace, settings: NotifySettings) -> None:
    message = " ".join(args.message) or TEST_MESSAGE
    request = NotificationRequest(
        title=TEST_TITLE,
        message=message,
        group=TEST_GROUP,
        execute_on_click=build_action_command(Action.OPEN, settings=settings),
        primary_label="Open",
    )
    get_notification_service().notify(request)


def cmd_init(args: argparse.Namespace, settings: NotifySettings) -> None:
    run_init(args.config or None, replace=args.replace)


def cmd_doctor(args: argparse.Namespace, settings: NotifySettings) -> None:
    run_doctor(settings, args.config or None)


def cmd_uninstall(args: argparse.Namespace, settings: NotifySettings) -> None:
    run_uninstall(args.config or None, restore=args.restore_config)


HANDLERS = {
    "init": cmd_init,
    "doctor": cmd_doctor,
    "test": cmd_test,
    "hook": cmd_hook,
    "action": cmd_action,
    "uninstall": cmd_uninstall,
}


def main(argv: list[str] | None = None) -> int:
    args_list = sys.argv[1:] if argv is None else list(argv)
    if not args_list:
        print_usage(sys.stderr)
        return 1
    if args_list[0] in HELP_WORDS:
        print_usage(sys.stdout)
        return 0

    settings = get_settings()
    configure_logging(settings)
    try:
        if args_list[0] not in COMMANDS and args_list[0] != "--version":
            msg = f"unknown command: {args_list[0]}"
            raise UsageError(msg)
        args = build_parser().parse_args(args_list)
        HANDLERS[args.command](args, settings)
    except (CodexNotifyError, OSError) as exc:
        logger.error("%s failed: %s", args_list[0], exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
