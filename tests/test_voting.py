"""
Tests for the majority vote.

Run with: pytest tests/test_voting.py -v
"""

from mlis.voting import NO_PREDICTION, is_misclassified, majority_vote


class TestMajorityVote:
    """Test winners and tie-breaking."""

    def test_clear_majority(self):
        assert majority_vote([1, 1, 0]) == 1

    def test_tie_goes_to_lowest_class(self):
        assert majority_vote([0, 1]) == 0
        assert majority_vote([2, 1, 2, 1]) == 1

    def test_explicit_number_of_classes(self):
        assert majority_vote([3, 3], n_classes=5) == 3

    def test_empty_neighbourhood(self):
        assert majority_vote([]) == NO_PREDICTION


class TestIsMisclassified:

    def test_agreement(self):
        assert not is_misclassified(0, [0, 0, 1])

    def test_disagreement(self):
        assert is_misclassified(1, [0, 0, 1])

    def test_no_neighbours_is_a_misclassification(self):
        assert is_misclassified(0, [])
