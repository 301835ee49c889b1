"""
Unit tests for blob events, envelopes and fold.
"""

import pytest
from pydantic import ValidationError

from blobsource.aggregates.blob import Blob, fold
from blobsource.events import (
    MAX_SEQUENCE,
    BlobCreated,
    BlobDataUpdated,
    BlobDeleted,
    BlobEvent,
    BlobRestored,
    BlobTagsAdded,
    BlobTagsDeleted,
    BlobTagsUpdated,
    EventEnvelope,
    apply_event,
    wrap,
)
from blobsource.exceptions import UnhandledEventError


class TestApplyEvent:
    """Tests for folding a single event onto a blob."""

    def test_created_replaces_prior_state(self):
        """Created ignores whatever the blob held before."""
        before = Blob(id="x", blob_type="old", data=b"old", deleted=True, tags={"a": "1"})

        after = apply_event(BlobCreated(blob_type="text/plain", data=b"hi"), before)

        assert after.blob_type == "text/plain"
        assert after.data == b"hi"
        assert after.tags == {}
        assert after.deleted is False

    def test_data_updated_replaces_data(self):
        after = apply_event(BlobDataUpdated(data=b"new"), Blob(data=b"old"))
        assert after.data == b"new"

    def test_data_updated_none_clears_data(self):
        after = apply_event(BlobDataUpdated(data=None), Blob(data=b"old"))
        assert after.data == b""

    @pytest.mark.parametrize("event_class", [BlobTagsAdded, BlobTagsUpdated])
    def test_tag_events_merge_and_overwrite(self, event_class):
        """TagsAdded and TagsUpdated apply identically."""
        before = Blob(tags={"a": "1", "b": "2"})

        after = apply_event(event_class(tags={"b": "20", "c": "3"}), before)

        assert after.tags == {"a": "1", "b": "20", "c": "3"}

    def test_tags_deleted_removes_keys_and_ignores_absent(self):
        before = Blob(tags={"a": "1", "b": "2"})

        after = apply_event(BlobTagsDeleted(keys=("a", "missing")), before)

        assert after.tags == {"b": "2"}

    def test_deleted_and_restored_toggle_flag(self):
        deleted = apply_event(BlobDeleted(), Blob())
        assert deleted.deleted is True
        assert apply_event(BlobRestored(), deleted).deleted is False

    def test_input_blob_is_not_modified(self):
        before = Blob(tags={"a": "1"})
        apply_event(BlobTagsDeleted(keys=("a",)), before)
        assert before.tags == {"a": "1"}

    def test_unknown_event_raises(self):
        class Unregistered(BlobEvent):
            pass

        with pytest.raises(UnhandledEventError) as exc_info:
            apply_event(Unregistered(), Blob())

        assert exc_info.value.event_type == "Unregistered"


class TestEventModels:
    """Tests for the event classes themselves."""

    def test_events_are_frozen(self):
        event = BlobCreated(blob_type="a")
        with pytest.raises(ValidationError):
            event.blob_type = "b"

    def test_event_type_is_class_name(self):
        assert BlobTagsDeleted(keys=("a",)).event_type == "BlobTagsDeleted"

    def test_event_codes(self):
        codes = {
            cls: cls.event_code
            for cls in (
                BlobCreated,
                BlobDataUpdated,
                BlobTagsAdded,
                BlobTagsUpdated,
                BlobTagsDeleted,
                BlobDeleted,
                BlobRestored,
            )
        }
        assert codes == {
            BlobCreated: "CE",
            BlobDataUpdated: "DUE",
            BlobTagsAdded: "TAE",
            BlobTagsUpdated: "TUE",
            BlobTagsDeleted: "TDE",
            BlobDeleted: "DE",
            BlobRestored: "RE",
        }


class TestEventEnvelope:
    """Tests for EventEnvelope."""

    def test_apply_stamps_id_and_sequence(self):
        envelope = EventEnvelope(aggregate_id="b1", sequence=3, event=BlobDeleted())

        blob = envelope.apply(Blob(id="b1", sequence=2))

        assert blob.id == "b1"
        assert blob.sequence == 3
        assert blob.deleted is True

    def test_sequence_must_be_positive(self):
        with pytest.raises(ValidationError):
            EventEnvelope(aggregate_id="b1", sequence=0, event=BlobDeleted())

    def test_sequence_is_bounded_to_64_bits(self):
        EventEnvelope(aggregate_id="b1", sequence=MAX_SEQUENCE, event=BlobDeleted())
        with pytest.raises(ValidationError):
            EventEnvelope(aggregate_id="b1", sequence=MAX_SEQUENCE + 1, event=BlobDeleted())

    def test_aggregate_id_must_not_be_empty(self):
        with pytest.raises(ValidationError):
            EventEnvelope(aggregate_id="", sequence=1, event=BlobDeleted())

    def test_keeps_event_subclass(self):
        envelope = EventEnvelope(aggregate_id="b1", sequence=1, event=BlobTagsAdded(tags={"a": "1"}))
        assert isinstance(envelope.event, BlobTagsAdded)
        assert envelope.event_type == "BlobTagsAdded"

    def test_str(self):
        envelope = EventEnvelope(aggregate_id="b1", sequence=1, event=BlobDeleted())
        assert str(envelope) == "BlobDeleted(aggregate_id=b1, sequence=1)"

    def test_wrap_numbers_consecutively(self):
        envelopes = wrap("b1", 4, [BlobDeleted(), BlobRestored()])

        assert [e.sequence for e in envelopes] == [4, 5]
        assert all(e.aggregate_id == "b1" for e in envelopes)


class TestFold:
    """Tests for rebuilding blob state from envelopes."""

    def test_empty_history_is_empty_blob(self):
        blob = fold([])
        assert blob == Blob()
        assert not blob.exists

    def test_full_lifecycle(self):
        envelopes = wrap(
            "b1",
            1,
            [
                BlobCreated(blob_type="text/plain", data=b"v1"),
                BlobTagsAdded(tags={"a": "1"}),
                BlobDataUpdated(data=b"v2"),
                BlobDeleted(),
            ],
        )

        blob = fold(envelopes)

        assert blob.id == "b1"
        assert blob.data == b"v2"
        assert blob.tags == {"a": "1"}
        assert blob.deleted is True
        assert blob.sequence == 4
        assert blob.exists
        assert not blob.is_active

    def test_fold_onto_existing_state(self):
        first = wrap("b1", 1, [BlobCreated(blob_type="a")])
        later = wrap("b1", 2, [BlobTagsAdded(tags={"k": "v"})])

        assert fold(later, fold(first)) == fold(first + later)

    def test_fold_is_deterministic(self):
        envelopes = wrap("b1", 1, [BlobCreated(blob_type="a"), BlobDeleted(), BlobRestored()])
        assert fold(envelopes) == fold(envelopes)

    def test_repr_hides_data(self):
        blob = Blob(id="b1", data=b"secret")
        assert "secret" not in repr(blob)
        assert "<6 bytes>" in repr(blob)
