"""
Tests for traversal state containers.
"""

from backend.questiontree.models import QuestionNode
from backend.questiontree.state import FactorAccumulator, QuestionRegistry, SiblingChain


def make_question(key):
    return QuestionNode(key=key, options={"a": 1})


class TestQuestionRegistry:
    """Tests for QuestionRegistry."""

    def test_push_and_membership(self):
        """Test pushed questions are members."""
        registry = QuestionRegistry()
        q1 = make_question("q1")
        assert registry.push(q1) is True
        assert q1 in registry
        assert len(registry) == 1

    def test_push_is_unique(self):
        """Test a question is registered only once."""
        registry = QuestionRegistry()
        q1 = make_question("q1")
        registry.push(q1)
        assert registry.push(q1) is False
        assert len(registry) == 1

    def test_membership_is_by_identity(self):
        """Test equal but distinct questions are separate entries."""
        registry = QuestionRegistry()
        registry.push(make_question("q1"))
        assert make_question("q1") not in registry

    def test_order(self):
        """Test iteration follows ask order and reverse iteration the opposite."""
        registry = QuestionRegistry()
        questions = [make_question(k) for k in ("q1", "q2", "q3")]
        for q in questions:
            registry.push(q)
        assert registry.keys() == ["q1", "q2", "q3"]
        assert [q.key for q in registry.most_recent_first()] == ["q3", "q2", "q1"]

    def test_prune_after(self):
        """Test pruning removes only later questions."""
        registry = QuestionRegistry()
        q1, q2, q3 = (make_question(k) for k in ("q1", "q2", "q3"))
        for q in (q1, q2, q3):
            registry.push(q)
        removed = registry.prune_after(q1)
        assert removed == [q2, q3]
        assert registry.keys() == ["q1"]

    def test_prune_after_unknown(self):
        """Test pruning for an unasked question is a no-op."""
        registry = QuestionRegistry()
        registry.push(make_question("q1"))
        assert registry.prune_after(make_question("other")) == []
        assert registry.keys() == ["q1"]


class TestSiblingChain:
    """Tests for SiblingChain."""

    def test_link(self):
        """Test questions are chained left to right."""
        chain = SiblingChain()
        q1, q2, q3 = (make_question(k) for k in ("q1", "q2", "q3"))
        chain.link([q1, q2, q3])
        assert chain.next_of(q1) is q2
        assert chain.next_of(q2) is q3
        assert chain.next_of(q3) is None

    def test_unlinked(self):
        """Test an unlinked question has no sibling."""
        assert SiblingChain().next_of(make_question("q")) is None


class TestFactorAccumulator:
    """Tests for FactorAccumulator."""

    def test_apply(self):
        """Test factors multiply into the value."""
        factors = FactorAccumulator()
        factors.record("a", 2)
        factors.record("b", 3)
        assert factors.apply(5) == 30

    def test_record_overwrites(self):
        """Test recording twice keeps the latest factor."""
        factors = FactorAccumulator()
        factors.record("a", 2)
        factors.record("a", 4)
        assert factors.snapshot() == {"a": 4}

    def test_discard(self):
        """Test discarding a factor, including unknown keys."""
        factors = FactorAccumulator()
        factors.record("a", 2)
        factors.discard("a")
        factors.discard("missing")
        assert "a" not in factors
        assert len(factors) == 0
        assert factors.apply(5) == 5

    def test_snapshot_is_copy(self):
        """Test snapshots do not alias internal state."""
        factors = FactorAccumulator()
        factors.record("a", 2)
        snapshot = factors.snapshot()
        snapshot["b"] = 3
        assert "b" not in factors
