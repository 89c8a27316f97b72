"""
Tests for anchor reconciliation
"""

from markco.anchors import AnchorReconciler

from _markco_helpers import make_comment


def reconcile_one(text, comment):
    return AnchorReconciler().reconcile_one(text, comment)


class TestLocate:
    """Tests for finding anchors in edited text"""

    def test_unchanged_position_kept(self):
        """Text still at its stored coordinates is not moved"""
        comment = make_comment("c1", "foo", 0, 4, 0, 7)
        update = reconcile_one("foo foo", comment)
        assert (update.anchor.start_line, update.anchor.start_char) == (0, 4)
        assert update.changed is False
        assert update.orphaned is False

    def test_line_inserted_above(self):
        """Inserting a line at the top moves the anchor down"""
        comment = make_comment("c1", "Line B", 1, 0, 1, 6)
        update = reconcile_one("New\nLine A\nLine B", comment)
        assert (update.anchor.start_line, update.anchor.start_char) == (2, 0)
        assert (update.anchor.end_line, update.anchor.end_char) == (2, 6)
        assert update.changed is True

    def test_character_shift_on_same_line(self):
        comment = make_comment("c1", "World", 0, 8, 0, 13)
        update = reconcile_one("# Hello, big World", comment)
        assert (update.anchor.start_char, update.anchor.end_char) == (13, 18)

    def test_nearest_line_preferred(self):
        """The occurrence closest to the stored line wins"""
        text = "foo\nx\nx\nx\nx\nx\nfoo\nbar"
        comment = make_comment("c1", "foo", 5, 0, 5, 3)
        update = reconcile_one(text, comment)
        assert update.anchor.start_line == 6

    def test_tie_goes_to_first_in_document(self):
        """Equally distant candidates resolve to the earlier one"""
        text = "foo\nbar\nfoo\nbaz\nfoo"
        comment = make_comment("c1", "foo", 3, 0, 3, 3)
        update = reconcile_one(text, comment)
        assert update.anchor.start_line == 2

    def test_multi_line_anchor(self):
        """Anchors spanning lines get their end recomputed"""
        comment = make_comment("c1", "end of one\nstart", 0, 6, 1, 5)
        update = reconcile_one("Intro\nThe end of one\nstart of two", comment)
        assert (update.anchor.start_line, update.anchor.start_char) == (1, 4)
        assert (update.anchor.end_line, update.anchor.end_char) == (2, 5)


class TestOrphaning:
    """Tests for anchors whose text is gone"""

    def test_missing_text_orphans(self):
        """Coordinates stay as they were"""
        comment = make_comment("c1", "deleted text", 4, 2, 4, 14)
        update = reconcile_one("Nothing left here", comment)
        assert update.orphaned is True
        assert update.changed is True
        assert update.anchor == comment.anchor

    def test_already_orphaned_is_not_a_change(self):
        comment = make_comment("c1", "deleted text", 4, 2, 4, 14, orphaned=True)
        update = reconcile_one("Nothing left here", comment)
        assert update.orphaned is True
        assert update.changed is False

    def test_orphan_recovers_when_text_returns(self):
        comment = make_comment("c1", "back again", 4, 2, 4, 12, orphaned=True)
        update = reconcile_one("Intro\nIt is back again", comment)
        assert update.orphaned is False
        assert update.changed is True
        assert update.anchor.start_line == 1

    def test_orphan_at_original_position_recovers(self):
        """Restoring the exact text in place clears the orphaned flag"""
        comment = make_comment("c1", "Hello", 0, 2, 0, 7, orphaned=True)
        update = reconcile_one("# Hello World", comment)
        assert update.orphaned is False
        assert update.changed is True

    def test_empty_anchor_text_orphans(self):
        comment = make_comment("c1", "", 0, 0, 0, 0)
        assert reconcile_one("anything", comment).orphaned is True


class TestReconcile:
    """Tests for reconciling a list of comments"""

    def test_results_follow_input_order(self):
        comments = [
            make_comment("a", "gone", 0, 0, 0, 4),
            make_comment("b", "Line B", 1, 0, 1, 6),
        ]
        updates = AnchorReconciler().reconcile("New\nLine A\nLine B", comments)
        assert [u.comment_id for u in updates] == ["a", "b"]
        assert [u.orphaned for u in updates] == [True, False]

    def test_idempotent(self):
        """A second pass without edits changes nothing"""
        text = "New\nLine A\nLine B"
        comment = make_comment("c1", "Line B", 0, 0, 0, 6)
        first = reconcile_one(text, comment)
        comment.anchor = first.anchor
        second = reconcile_one(text, comment)
        assert second.anchor == first.anchor
        assert second.changed is False
