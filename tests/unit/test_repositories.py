from __future__ import annotations

import dataclasses
import threading
from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from image_library.domain.entities.derived_image import DerivedImage
from image_library.domain.exceptions import RecordNotFoundError
from image_library.domain.entities.source_image import SourceImage
from image_library.infrastructure.database.repositories.image_repository import ImageRepository
from image_library.infrastructure.database.repositories.source_image_repository import SourceImageRepository


def _source(**overrides) -> SourceImage:
    values = dict(
        id="",
        disk="public",
        name="photo",
        extension="jpg",
        mime_type="image/jpeg",
        width=100,
        height=80,
        size=1234,
        created_at=datetime.now(UTC),
    )
    values.update(overrides)
    return SourceImage(**values)


def _image(**overrides) -> DerivedImage:
    values = dict(
        id="",
        owner_type="post",
        owner_id="1",
        source_image_id="src_1",
        context_key="hero",
        created_at=datetime.now(UTC),
    )
    values.update(overrides)
    return DerivedImage(**values)


def test_create_assigns_ids_and_get():
    repo = SourceImageRepository(None)
    a = repo.create(_source())
    b = repo.create(_source(name="other"))
    assert (a.id, b.id) == ("src_1", "src_2")
    assert repo.get("src_2") == b
    assert repo.get("missing") is None


def test_observer_events_and_changed_fields():
    repo = ImageRepository(None)
    observer = Mock()
    observer.saving.side_effect = lambda entity: dataclasses.replace(entity, disk="public")
    repo.observe(observer)

    created = repo.create(_image())
    assert created.disk == "public"
    observer.created.assert_called_once_with(created)

    updated = repo.update(created.id, sort_order=5)
    entity, changed = observer.updated.call_args.args
    assert entity == updated
    assert changed == {"sort_order"}

    repo.delete(created.id)
    observer.deleting.assert_called_once_with(updated)
    assert repo.get(created.id) is None


def test_update_without_changes_fires_nothing():
    repo = ImageRepository(None)
    created = repo.create(_image())
    observer = Mock(spec=["updated"])
    repo.observe(observer)
    repo.update(created.id, sort_order=created.sort_order)
    observer.updated.assert_not_called()


def test_transaction_rolls_back_without_hooks():
    repo = ImageRepository(None)
    kept = repo.create(_image())
    observer = Mock(spec=["created", "updated", "deleting"])
    repo.observe(observer)

    with pytest.raises(RuntimeError):
        with repo.transaction():
            repo.update(kept.id, sort_order=9)
            repo.create(_image(owner_id="2"))
            repo.delete(kept.id)
            raise RuntimeError("abort")

    assert repo.get(kept.id) == kept
    assert [img.id for img in repo.list()] == [kept.id]
    # only the original writes fired, nothing for the rollback
    assert observer.created.call_count == 1
    assert observer.deleting.call_count == 1


def test_list_for_owner_and_sort_order():
    repo = ImageRepository(None)
    repo.create(_image(sort_order=2))
    repo.create(_image(sort_order=1, relation="gallery"))
    repo.create(_image(owner_id="2"))
    assert [i.sort_order for i in repo.list_for_owner("post", "1")] == [1, 2]
    assert len(repo.list_for_owner("post", "1", relation="gallery")) == 1
    assert repo.next_sort_order("post", "1", "hero") == 3
    assert repo.next_sort_order("post", "3", "hero") == 1


def test_row_mapping_roundtrip():
    repo = ImageRepository(None)
    entity = _image(id="img_7", crop_data={"sm": None}, alt_text={"en": "A cat"})
    row = repo._to_row(entity)
    assert isinstance(row["crop_data"], str)
    assert repo._from_row(row) == entity


def test_update_missing_record():
    repo = ImageRepository(None)
    with pytest.raises(RecordNotFoundError):
        repo.update("img_404", sort_order=1)


def test_concurrent_transactions_keep_separate_journals():
    repo = ImageRepository(None)
    a_created = threading.Event()
    b_done = threading.Event()
    results = {}

    def first():
        with pytest.raises(RuntimeError):
            with repo.transaction():
                results["a"] = repo.create(_image(owner_id="a"))
                a_created.set()
                b_done.wait(timeout=10)
                raise RuntimeError("abort")

    def second():
        a_created.wait(timeout=10)
        with repo.transaction():
            results["b"] = repo.create(_image(owner_id="b"))
        b_done.set()

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert repo.get(results["a"].id) is None
    assert repo.get(results["b"].id) == results["b"]
