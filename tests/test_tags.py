"""
Tests for photo tags
"""
from sitemark.editor.annotations import PALETTE
from sitemark.editor.tags import TagSet


class TestTagSet:
    """Tests for TagSet"""

    def test_colors_follow_palette(self):
        """Colors by insertion index, stable on removal"""
        tags = TagSet()
        electrical = tags.add("Electrical")
        leak = tags.add("Leak")
        urgent = tags.add("Urgent")

        assert electrical.color == PALETTE[0]
        assert leak.color == PALETTE[1]
        assert urgent.color == PALETTE[2]

        assert tags.remove(leak.id) is True
        remaining = list(tags)
        assert [t.label for t in remaining] == ["Electrical", "Urgent"]
        assert [t.color for t in remaining] == [PALETTE[0], PALETTE[2]]

    def test_color_wraps_around(self):
        tags = TagSet()
        added = [tags.add(f"tag{i}") for i in range(len(PALETTE) + 1)]
        assert added[-1].color == PALETTE[0]

    def test_color_uses_current_length_after_removal(self):
        tags = TagSet()
        first = tags.add("a")
        tags.add("b")
        tags.remove(first.id)

        assert tags.add("c").color == PALETTE[1]

    def test_blank_label_ignored(self):
        tags = TagSet()
        assert tags.add("   ") is None
        assert len(tags) == 0

    def test_label_is_stripped(self):
        tags = TagSet()
        assert tags.add("  Roof  ").label == "Roof"

    def test_duplicates_allowed(self):
        tags = TagSet()
        tags.add("Leak")
        tags.add("Leak")
        assert tags.labels() == ["Leak", "Leak"]

    def test_remove_unknown(self):
        assert TagSet().remove("nope") is False
