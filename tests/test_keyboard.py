"""Tests for the runtime keyboard protocol."""

from unittest.mock import Mock

import pytest

from watch_exec.keyboard_handler import DEFAULT_BINDINGS, KeyboardHandler


@pytest.fixture
def controller():
    return Mock()


class TestKeyboardHandler:
    """Test KeyboardHandler key dispatch."""

    def test_handler_initialization(self, controller):
        handler = KeyboardHandler(controller)
        assert handler.controller is controller
        assert set(handler.callbacks) == {"q", "r"}

    @pytest.mark.parametrize("key", [b"q", b"Q", "q"])
    def test_quit(self, controller, key):
        assert KeyboardHandler(controller).handle(key) is False
        controller.request_run.assert_not_called()

    @pytest.mark.parametrize("key", [b"r", b"R", "r"])
    def test_rerun(self, controller, key):
        assert KeyboardHandler(controller).handle(key) is True
        controller.request_run.assert_called_once_with()

    @pytest.mark.parametrize("key", [b"x", b"\n", b"\x1b", b"\xff"])
    def test_other_keys_are_ignored(self, controller, key):
        assert KeyboardHandler(controller).handle(key) is True
        controller.request_run.assert_not_called()

    def test_binding_help(self, controller):
        help_text = KeyboardHandler(controller).get_binding_help()
        assert "- 'q': quit the program" in help_text
        assert "- 'r': rerun all commands immediately" in help_text

    def test_custom_bindings(self, controller):
        handler = KeyboardHandler(controller, bindings={"x": ("quit", "exit"), "a": ("rerun", "again")})
        assert handler.handle(b"q") is True
        assert handler.handle(b"a") is True
        assert handler.handle(b"x") is False
        controller.request_run.assert_called_once()

    def test_unknown_action(self, controller):
        with pytest.raises(ValueError):
            KeyboardHandler(controller, bindings={"z": ("explode", "")})

    def test_defaults_not_mutated(self, controller):
        handler = KeyboardHandler(controller)
        handler.bindings["z"] = ("quit", "")
        assert "z" not in DEFAULT_BINDINGS
