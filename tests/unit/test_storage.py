from urllib.parse import parse_qs, urlparse
from unittest.mock import Mock

import pytest

from image_library.config import ImageLibrarySettings
from image_library.domain.exceptions import ConfigurationError, StorageError
from image_library.infrastructure.storage.disk_manager import DiskManager
from image_library.infrastructure.storage.local_storage import LocalDiskStorage
from image_library.infrastructure.storage.supabase_storage import SupabaseStorage


def test_put_get_exists_size_delete(storage):
    storage.put("a/b/c.jpg", b"data")
    assert storage.exists("a/b/c.jpg")
    assert storage.get("a/b/c.jpg") == b"data"
    assert storage.size("a/b/c.jpg") == 4
    storage.delete("a/b/c.jpg")
    assert not storage.exists("a/b/c.jpg")


def test_files_lists_direct_children_sorted(storage):
    storage.put("dir/b.jpg", b"1")
    storage.put("dir/a.jpg", b"1")
    storage.put("dir/sub/c.jpg", b"1")
    assert storage.files("dir") == ["dir/a.jpg", "dir/b.jpg"]
    assert storage.files("nope") == []


def test_delete_tree(storage):
    storage.put("x/y/z.png", b"1")
    storage.delete_tree("x")
    assert not storage.exists("x/y/z.png")
    with pytest.raises(StorageError):
        storage.delete_tree("")


def test_paths_cannot_escape_root(storage):
    with pytest.raises(StorageError):
        storage.put("../outside.txt", b"x")


def test_get_missing_raises(storage):
    with pytest.raises(StorageError):
        storage.get("missing.jpg")


def test_urls_and_signatures(storage):
    assert storage.url("image-library/u/sm.jpg") == "/storage/image-library/u/sm.jpg"
    url = storage.temporary_url("image-library/u/sm.jpg", 300)
    query = parse_qs(urlparse(url).query)
    expires, signature = int(query["expires"][0]), query["signature"][0]
    assert storage.verify("image-library/u/sm.jpg", expires, signature)
    assert not storage.verify("image-library/u/md.jpg", expires, signature)
    assert not storage.verify("image-library/u/sm.jpg", 1, storage.sign("image-library/u/sm.jpg", 1))


def test_supabase_storage_falls_back_to_local_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("SUPABASE_STORAGE_LOCAL_DIR", str(tmp_path))
    bucket = SupabaseStorage(None, bucket="images")
    assert bucket.disabled
    bucket.put("p/q.jpg", b"abc")
    assert (tmp_path / "images" / "p" / "q.jpg").read_bytes() == b"abc"
    assert bucket.files("p") == ["p/q.jpg"]
    assert bucket.url("p/q.jpg") == "/storage/images/p/q.jpg"


def test_disk_manager_from_settings(tmp_path):
    settings = ImageLibrarySettings.create(disks={"public": {"root": str(tmp_path)}})
    disks = DiskManager.from_settings(settings)
    assert isinstance(disks.disk("public"), LocalDiskStorage)
    with pytest.raises(ConfigurationError):
        disks.disk("s3")


class _PagedBucket:
    """In-memory stand-in for a storage3 bucket that honours limit/offset."""

    def __init__(self, paths):
        self.paths = set(paths)
        self.removed = []

    def list(self, directory, options):
        prefix = f"{directory}/"
        names = set()
        for path in self.paths:
            if path.startswith(prefix):
                head, _, rest = path[len(prefix):].partition("/")
                names.add((head, bool(rest)))
        entries = [{"name": n, "id": None if is_dir else n} for n, is_dir in sorted(names)]
        return entries[options["offset"] : options["offset"] + options["limit"]]

    def remove(self, paths):
        self.removed.extend(paths)


def test_supabase_listing_reads_every_page(monkeypatch):
    monkeypatch.setenv("SUPABASE_DISABLED", "0")
    paths = [f"lib/u/d/md_w{w}.jpg" for w in range(250)] + ["lib/u/original.jpg"]
    bucket = _PagedBucket(paths)
    client = Mock()
    client.storage.from_.return_value = bucket
    storage = SupabaseStorage(client, bucket="images")

    assert len(storage.files("lib/u/d")) == 250
    storage.delete_tree("lib/u")
    assert sorted(bucket.removed) == sorted(paths)
