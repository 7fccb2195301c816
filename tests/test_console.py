"""Tests for ui/console.py - prompts, menus and yes/no gates."""

import pytest

from lvm_luks_extend.storage.exceptions import InvalidChoiceError, OperationCancelled
from lvm_luks_extend.ui.console import Console


class TestAsk:
    """Tests for Console.ask()."""

    def test_strips_answer(self, scripted_console):
        """Test that surrounding whitespace is removed."""
        console, _ = scripted_console(["  sdb \n"])

        assert console.ask("Disk: ") == "sdb"

    def test_end_of_input_cancels(self):
        """Test that Ctrl-D cancels instead of reading as an empty answer."""

        def closed(prompt):
            raise EOFError

        with pytest.raises(OperationCancelled):
            Console(input_func=closed).ask("Disk: ")


class TestConfirm:
    """Tests for Console.confirm() and require_confirmation()."""

    @pytest.mark.parametrize("answer", ["y", "Y", "yes", "YES"])
    def test_yes(self, scripted_console, answer):
        """Test accepted yes answers."""
        console, _ = scripted_console([answer])

        assert console.confirm("Continue?") is True

    @pytest.mark.parametrize("answer", ["", "n", "No"])
    def test_no_is_the_default(self, scripted_console, answer):
        """Test that empty input declines."""
        console, _ = scripted_console([answer])

        assert console.confirm("Continue?") is False

    def test_reasks_on_anything_else(self, scripted_console):
        """Test that an unclear answer re-prompts within the same gate."""
        console, scripted = scripted_console(["maybe", "sure", "y"])

        assert console.confirm("Continue?") is True
        assert scripted.prompts == ["Continue? (y/N): "] * 3

    def test_require_confirmation_cancels(self, scripted_console):
        """Test that declining raises OperationCancelled."""
        console, _ = scripted_console(["n"])

        with pytest.raises(OperationCancelled, match="cancelled"):
            console.require_confirmation()


class TestChoose:
    """Tests for Console.choose() and try_choose()."""

    OPTIONS = {"1": ("/ (root)", "root"), "2": ("/home", "home")}

    def test_returns_value_of_choice(self, scripted_console):
        """Test that the typed key selects its value."""
        console, _ = scripted_console(["2"])

        assert console.choose("Pick:", self.OPTIONS) == "home"

    def test_invalid_choice_raises(self, scripted_console):
        """Test that unknown keys are rejected without re-prompting."""
        console, scripted = scripted_console(["7"])

        with pytest.raises(InvalidChoiceError) as exc_info:
            console.choose("Pick:", self.OPTIONS)

        assert exc_info.value.choice == "7"
        assert exc_info.value.valid == ["1", "2"]
        assert len(scripted.prompts) == 1

    def test_try_choose_returns_none(self, scripted_console):
        """Test that try_choose swallows the error into None."""
        console, _ = scripted_console(["x"])

        assert console.try_choose("Pick:", self.OPTIONS) is None
