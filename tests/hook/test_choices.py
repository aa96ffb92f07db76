from unittest.mock import patch

import pytest

from codex_notify.config import NotifySettings
from codex_notify.hook.choices import (
    action_for_label,
    build_action_command,
    choices_from_labels,
    executable_command,
    infer_label,
    resolve,
)
from codex_notify.model.models import Action, Choice, NormalizedEvent


def approve(thread="t1"):
    return f"'codex-notify' action 'approve' --thread-id='{thread}'"


def reject(thread="t1"):
    return f"'codex-notify' action 'reject' --thread-id='{thread}'"


class TestBuildActionCommand:
    """継続コマンドの組み立て"""

    def test_simple_action(self, settings):
        assert build_action_command(Action.OPEN, settings=settings) == (
            "'codex-notify' action 'open'"
        )

    def test_thread_id(self, settings):
        assert build_action_command(Action.APPROVE, "t1", settings=settings) == approve()

    def test_submit_text_before_thread(self, settings):
        command = build_action_command(Action.SUBMIT, "t1", "Maybe later", settings=settings)
        assert command == (
            "'codex-notify' action 'submit' --text='Maybe later' --thread-id='t1'"
        )

    def test_single_quotes_are_escaped(self, settings):
        command = build_action_command(Action.SUBMIT, None, "it's", settings=settings)
        assert command.endswith("--text='it'\"'\"'s'")

    def test_configured_executable_is_split(self, tmp_path):
        settings = NotifySettings(cache_dir=tmp_path, executable="/usr/bin/env codex-notify")
        assert executable_command(settings) == ["/usr/bin/env", "codex-notify"]

    def test_module_fallback(self):
        with patch("codex_notify.hook.choices.sys") as fake_sys:
            fake_sys.argv = ["pytest"]
            fake_sys.executable = "/opt/python"
            assert executable_command(None) == ["/opt/python", "-m", "codex_notify"]


class TestActionForLabel:
    """ラベルからアクションへの対応"""

    @pytest.mark.parametrize("label", ["Yes", "allow", "OK", " Approved "])
    def test_approve_words(self, label):
        assert action_for_label(label, 0, 3) is Action.APPROVE

    @pytest.mark.parametrize("label", ["No", "deny", "Cancel", "n"])
    def test_reject_words(self, label):
        assert action_for_label(label, 0, 3) is Action.REJECT

    def test_open_words(self):
        assert action_for_label("Show", 2, 3) is Action.OPEN

    def test_two_unknown_labels_are_positional(self):
        assert action_for_label("Proceed", 0, 2) is Action.APPROVE
        assert action_for_label("Stop", 1, 2) is Action.REJECT

    def test_unknown_label_with_other_count_is_submit(self):
        assert action_for_label("Proceed", 0, 3) is None
        assert action_for_label("Proceed", 0, 1) is None


class TestResolve:
    """承認イベントの選択肢"""

    def test_yes_no(self, settings):
        event = NormalizedEvent("approval-requested", "t1", option_labels=("Yes", "No"))

        assert resolve(event, settings) == [Choice("Yes", approve()), Choice("No", reject())]

    def test_positional_two_options(self, settings):
        event = NormalizedEvent("approval-requested", "t1", option_labels=("Proceed", "Stop"))

        assert resolve(event, settings) == [
            Choice("Proceed", approve()),
            Choice("Stop", reject()),
        ]

    def test_three_unknown_options_submit_label(self, settings):
        event = NormalizedEvent(
            "approval-requested", "t1", option_labels=("Alpha", "Beta", "Gamma")
        )

        choices = resolve(event, settings)

        assert [c.label for c in choices] == ["Alpha", "Beta", "Gamma"]
        assert choices[1].command == (
            "'codex-notify' action 'submit' --text='Beta' --thread-id='t1'"
        )

    def test_default_trio_when_no_options(self, settings):
        event = NormalizedEvent("approval-requested", "t1")

        choices = resolve(event, settings)

        assert [c.label for c in choices] == ["Open", "Approve", "Reject"]
        assert choices[0].command == "'codex-notify' action 'open' --thread-id='t1'"
        assert choices[1].command == approve()
        assert choices[2].command == reject()

    def test_blank_labels_are_skipped(self, settings):
        event = NormalizedEvent("approval-requested", None, option_labels=("  ",))
        # only blanks -> default trio
        assert [c.label for c in resolve(event, settings)] == ["Open", "Approve", "Reject"]

    def test_non_approval_has_no_choices(self, settings):
        assert resolve(NormalizedEvent("agent-turn-complete", "t1"), settings) == []

    def test_disabled_actions(self, tmp_path):
        settings = NotifySettings(cache_dir=tmp_path, approval_actions_enabled="false")
        event = NormalizedEvent("approval-requested", "t1", option_labels=("Yes", "No"))

        assert resolve(event, settings) == []

    def test_labels_are_trimmed(self, settings):
        choices = choices_from_labels(["  Yes  ", "Deny"], "t1", settings)
        assert choices[0].label == "Yes"


class TestInferLabel:
    """クリックコマンドからのボタン名推定"""

    @pytest.mark.parametrize(
        ("action", "label"),
        [
            (Action.APPROVE, "Approve"),
            (Action.REJECT, "Reject"),
            (Action.CHOOSE, "Choose"),
            (Action.SUBMIT, "Submit"),
            (Action.OPEN, "Open"),
        ],
    )
    def test_from_action_command(self, settings, action, label):
        command = build_action_command(action, "t1", "x", settings=settings)
        assert infer_label(command) == label

    def test_other_command_is_open(self):
        assert infer_label("open -a Ghostty") == "Open"

    def test_empty_command(self):
        assert infer_label("   ") == ""
