"""
Tests for the pending-confirmation slot
"""
import pytest

from sitemark.editor.annotations import Annotation, AnnotationType
from sitemark.editor.pending import PendingConfirmation


@pytest.fixture
def measurement():
    return Annotation(type=AnnotationType.MEASUREMENT, x=0, y=0, x2=100, y2=0)


class TestPendingConfirmation:
    """Tests for PendingConfirmation"""

    def test_starts_empty(self):
        pending = PendingConfirmation()
        assert not pending.is_active
        assert pending.text == ""
        assert pending.visible is False

    def test_begin_fills_slot(self, measurement):
        pending = PendingConfirmation()
        pending.begin(measurement)

        assert pending.is_active
        assert pending.annotation is measurement
        assert pending.visible is True

    def test_begin_twice_raises(self, measurement):
        pending = PendingConfirmation()
        pending.begin(measurement)
        with pytest.raises(RuntimeError):
            pending.begin(Annotation(type=AnnotationType.TEXT, x=1, y=1))

    def test_confirm_with_text(self, measurement):
        pending = PendingConfirmation()
        pending.begin(measurement)

        result = pending.confirm("  10 ft ")

        assert result is not None
        assert result.text == "10 ft"
        assert result.id == measurement.id
        assert not pending.is_active

    def test_confirm_uses_buffer(self, measurement):
        pending = PendingConfirmation()
        pending.begin(measurement)
        pending.set_text("2 m")

        assert pending.confirm().text == "2 m"

    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    def test_blank_confirm_discards(self, measurement, text):
        pending = PendingConfirmation()
        pending.begin(measurement)

        assert pending.confirm(text) is None
        assert not pending.is_active
        assert pending.text == ""
        assert pending.visible is False

    def test_cancel_clears(self, measurement):
        pending = PendingConfirmation()
        pending.begin(measurement)
        pending.set_text("draft")
        pending.cancel()

        assert not pending.is_active
        assert pending.text == ""

    def test_confirm_without_pending(self):
        assert PendingConfirmation().confirm("x") is None
