"""
Tests for the toast notification channel.
"""

from conftest import FakeClock
from recipe_engine.notifications import Notifier


class TestNotifier:
    """Test last-message-wins semantics and display duration."""

    def test_nothing_to_show_initially(self):
        assert Notifier(duration_seconds=2, clock=FakeClock()).current() is None

    def test_message_visible_within_duration(self):
        clock = FakeClock()
        notifier = Notifier(duration_seconds=2, clock=clock)
        notifier.push("Added to Cart")

        clock.advance(1.9)

        assert notifier.current() == "Added to Cart"

    def test_message_expires_after_duration(self):
        """Test that a message disappears once its display window has passed."""
        clock = FakeClock()
        notifier = Notifier(duration_seconds=2, clock=clock)
        notifier.push("Added to Cart")

        clock.advance(2)

        assert notifier.current() is None

    def test_last_message_wins_and_restarts_window(self):
        """Test that a new message replaces the old one with a fresh window."""
        clock = FakeClock()
        notifier = Notifier(duration_seconds=2, clock=clock)
        notifier.push("Added to Favorites")
        clock.advance(1.5)
        notifier.push("Removed from Favorites")
        clock.advance(1.5)

        assert notifier.current() == "Removed from Favorites"

    def test_dismiss(self):
        notifier = Notifier(duration_seconds=2, clock=FakeClock())
        notifier.push("Added to Cart")

        notifier.dismiss()

        assert notifier.current() is None

    def test_duration_from_config(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_SECONDS", "5")
        assert Notifier().duration_seconds == 5.0
