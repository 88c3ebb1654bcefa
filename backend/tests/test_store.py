import json
import stat
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from moto import mock_aws

from comment_board.config import Settings
from comment_board.models.schemas import CommentKey
from comment_board.services.store import (
    FileCommentStore,
    LocationCache,
    S3CommentStore,
    StoreConfigurationError,
    StoreError,
    build_store,
)

TEST_BUCKET = "test-comments-bucket"
KEY = CommentKey("abc123", "homepage")
COMMENT = {"id": "k1_aaaaaaaa", "site": "homepage", "sender": "", "text": "hi", "ts": "2026-10-18T09:00:00.000Z"}


# ---------- FileCommentStore ----------

def test_file_read_missing_document_is_empty(file_store):
    assert file_store.read(KEY) == []


def test_file_write_creates_directory_and_reads_back(file_store):
    assert not file_store.data_dir.exists()

    file_store.write(KEY, [COMMENT])

    assert file_store.path_for(KEY).name == "abc123_homepage.json"
    assert file_store.read(KEY) == [COMMENT]


def test_file_write_is_pretty_printed_json_array(file_store):
    file_store.write(KEY, [COMMENT])

    raw = file_store.path_for(KEY).read_text(encoding="utf-8")
    assert raw.startswith("[\n  {")
    assert json.loads(raw) == [COMMENT]


def test_file_write_leaves_no_temp_files(file_store):
    file_store.write(KEY, [COMMENT])
    file_store.write(KEY, [])

    assert [p.name for p in file_store.data_dir.iterdir()] == ["abc123_homepage.json"]
    assert file_store.read(KEY) == []


def test_file_write_uses_default_permissions(file_store):
    file_store.write(KEY, [COMMENT])
    reference = file_store.data_dir / "reference.txt"
    reference.write_text("x", encoding="utf-8")

    written_mode = stat.S_IMODE(file_store.path_for(KEY).stat().st_mode)
    assert written_mode == stat.S_IMODE(reference.stat().st_mode)


def test_file_write_cleans_temp_file_on_any_error(file_store):
    file_store.write(KEY, [COMMENT])

    with patch("comment_board.services.store._encode_document", side_effect=TypeError("boom")):
        with pytest.raises(TypeError):
            file_store.write(KEY, [])

    assert [p.name for p in file_store.data_dir.iterdir()] == ["abc123_homepage.json"]
    assert file_store.read(KEY) == [COMMENT]


def test_file_keys_are_isolated(file_store):
    file_store.write(KEY, [COMMENT])

    assert file_store.read(CommentKey("abc123", "about")) == []
    assert file_store.read(CommentKey("xyz789", "homepage")) == []


def test_file_corrupt_document_raises(file_store):
    file_store.data_dir.mkdir(parents=True)
    file_store.path_for(KEY).write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreError):
        file_store.read(KEY)


def test_file_non_list_document_raises(file_store):
    file_store.data_dir.mkdir(parents=True)
    file_store.path_for(KEY).write_text('{"id": "x"}', encoding="utf-8")

    with pytest.raises(StoreError):
        file_store.read(KEY)


# ---------- LocationCache ----------

def test_location_cache_operations():
    cache = LocationCache()
    assert cache.get("a") is None

    cache.set("a", "comments/a.json")
    assert cache.get("a") == "comments/a.json"
    assert len(cache) == 1

    cache.discard("a")
    cache.discard("missing")
    assert cache.get("a") is None

    cache.set("b", "comments/b.json")
    cache.clear()
    assert len(cache) == 0


# ---------- S3CommentStore ----------

@mock_aws
def test_s3_read_missing_document_is_empty(s3_client):
    store = S3CommentStore(TEST_BUCKET, client=s3_client)

    assert store.read(KEY) == []
    assert len(store.cache) == 0


@mock_aws
def test_s3_write_and_read(s3_client):
    store = S3CommentStore(TEST_BUCKET, client=s3_client)

    store.write(KEY, [COMMENT])

    obj = s3_client.get_object(Bucket=TEST_BUCKET, Key="comments/abc123_homepage.json")
    assert obj["ContentType"] == "application/json"
    assert json.loads(obj["Body"].read()) == [COMMENT]
    assert store.read(KEY) == [COMMENT]


@mock_aws
def test_s3_lookup_on_cache_miss_populates_cache(s3_client):
    S3CommentStore(TEST_BUCKET, client=s3_client).write(KEY, [COMMENT])

    fresh = S3CommentStore(TEST_BUCKET, client=s3_client)
    assert fresh.cache.get("comments/abc123_homepage.json") is None

    assert fresh.read(KEY) == [COMMENT]
    assert fresh.cache.get("comments/abc123_homepage.json") == "comments/abc123_homepage.json"


@mock_aws
def test_s3_cached_location_skips_lookup(s3_client):
    store = S3CommentStore(TEST_BUCKET, client=s3_client)
    store.write(KEY, [COMMENT])

    with patch.object(store, "_locate") as locate:
        assert store.read(KEY) == [COMMENT]
    locate.assert_not_called()


@mock_aws
def test_s3_lookup_ignores_prefix_siblings(s3_client):
    s3_client.put_object(
        Bucket=TEST_BUCKET, Key="comments/abc123_homepage.json.bak", Body=b"[]"
    )
    store = S3CommentStore(TEST_BUCKET, client=s3_client)

    assert store.read(KEY) == []
    assert len(store.cache) == 0


@mock_aws
def test_s3_stale_cache_entry_is_evicted(s3_client):
    store = S3CommentStore(TEST_BUCKET, client=s3_client)
    store.write(KEY, [COMMENT])
    s3_client.delete_object(Bucket=TEST_BUCKET, Key="comments/abc123_homepage.json")

    assert store.read(KEY) == []
    assert len(store.cache) == 0


def test_s3_missing_bucket_is_configuration_error():
    store = S3CommentStore("", client=MagicMock())

    with pytest.raises(StoreConfigurationError):
        store.read(KEY)
    with pytest.raises(StoreConfigurationError):
        store.write(KEY, [])


def test_s3_client_errors_become_store_errors():
    client = MagicMock()
    client.list_objects_v2.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListObjectsV2"
    )
    client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example")
    store = S3CommentStore(TEST_BUCKET, client=client)

    with pytest.raises(StoreError):
        store.read(KEY)
    with pytest.raises(StoreError):
        store.write(KEY, [COMMENT])
    assert len(store.cache) == 0


# ---------- build_store ----------

def test_build_store_defaults_to_filesystem(monkeypatch, tmp_path):
    monkeypatch.delenv("COMMENTS_STORE_BACKEND", raising=False)
    monkeypatch.setenv("COMMENTS_DATA_DIR", str(tmp_path))

    store = build_store(Settings())

    assert isinstance(store, FileCommentStore)
    assert store.data_dir == tmp_path


def test_build_store_s3(monkeypatch):
    monkeypatch.setenv("COMMENTS_STORE_BACKEND", "s3")
    monkeypatch.setenv("S3_BUCKET", "comments-prod")

    store = build_store(Settings())

    assert isinstance(store, S3CommentStore)
    assert store.bucket == "comments-prod"
    assert store.object_key(KEY) == "comments/abc123_homepage.json"


def test_build_store_unknown_backend(monkeypatch):
    monkeypatch.setenv("COMMENTS_STORE_BACKEND", "redis")

    with pytest.raises(StoreConfigurationError):
        build_store(Settings())
