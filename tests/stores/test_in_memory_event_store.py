"""
Tests specific to InMemoryEventStore.
"""

from blobsource.testing import sample_history


class TestInMemoryEventStore:
    """Tests for the helpers only the in-memory store has."""

    def test_len_counts_all_envelopes(self, memory_store):
        memory_store.persist("a", sample_history("a")[:2])
        memory_store.persist("b", sample_history("b")[:3])

        assert len(memory_store) == 5

    def test_clear(self, memory_store):
        memory_store.persist("a", sample_history("a"))

        memory_store.clear()

        assert len(memory_store) == 0
        assert memory_store.aggregate_ids() == []

    def test_find_returns_copy(self, memory_store):
        history = sample_history("a")
        memory_store.persist("a", history)

        memory_store.find("a").clear()

        assert memory_store.find("a") == history

    def test_stores_copies_of_persisted_envelopes(self, memory_store):
        history = sample_history("a")
        memory_store.persist("a", history)

        stored = memory_store.find("a")

        assert stored == history
        assert all(found is not given for found, given in zip(stored, history, strict=True))
        assert stored[2].event.tags is not history[2].event.tags
