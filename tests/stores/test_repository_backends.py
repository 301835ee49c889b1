"""
Repository scenarios run against every backend.
"""

import pytest

from blobsource.aggregates.repository import BlobRepository
from blobsource.commands import CreateBlob, DeleteBlob, RestoreBlob, UpdateBlob, UpdateBlobTags
from blobsource.exceptions import CommandValidationError


class TestRepositoryOnEveryBackend:
    """The same command sequence gives the same state on each store."""

    def test_lifecycle(self, any_store):
        repository = BlobRepository(any_store, enable_tracing=False)

        repository.process(CreateBlob("b1", blob_type="text/plain", data=b"v1"))
        repository.process(UpdateBlobTags("b1", add_or_update={"env": "prod", "team": "core"}))
        repository.process(UpdateBlobTags("b1", add_or_update={"env": "dev"}, delete_keys=["team"]))
        repository.process(UpdateBlob("b1", data=b"v2"))
        repository.process(DeleteBlob("b1"))
        with pytest.raises(CommandValidationError):
            repository.process(UpdateBlob("b1", clear=True))
        returned = repository.process(RestoreBlob("b1"))

        found = repository.find("b1")
        assert found == returned
        assert found.data == b"v2"
        assert found.tags == {"env": "dev"}
        assert found.is_active
        assert found.sequence == 7
        assert any_store.aggregate_ids() == ["b1"]
