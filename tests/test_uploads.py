"""Tests for the upload path: staging, size cap, batch publication and races."""
import errno
import io
import os
import threading
from pathlib import Path

import pytest
from werkzeug.datastructures import FileStorage

import storage
from errors import InvalidName, NoFiles, NotFound, PayloadTooLarge, UnknownToken
from registry import FileEntry
from uploads import StagedFile, receive_files


def part(name, data):
    return FileStorage(stream=io.BytesIO(data), filename=name)


def test_stores_files_and_records_metadata(bare_store):
    token = bare_store.create_session()

    entries = receive_files(bare_store, token, [part("a.txt", b"hello"), part("b.bin", b"\x00" * 10)])

    assert entries == [FileEntry("a.txt", 5), FileEntry("b.bin", 10)]
    assert (bare_store.root / token / "a.txt").read_bytes() == b"hello"
    assert bare_store.list_files(token) == entries


def test_upload_touches_activity_clock(bare_store):
    token = bare_store.create_session()
    path = bare_store.root / token
    old = path.stat().st_mtime - bare_store.ttl / 2
    os.utime(path, (old, old))
    assert storage.age(path) >= bare_store.ttl / 2 - 1

    receive_files(bare_store, token, [part("a.txt", b"x")])

    assert storage.age(path) < 5


def test_unknown_token_writes_nothing(bare_store):
    with pytest.raises(UnknownToken):
        receive_files(bare_store, "0b9e1c52-7f0e-4a56-9d2f-6f7c5a3e8d10", [part("a.txt", b"x")])
    assert list(bare_store.staging_dir.iterdir()) == []


def test_empty_request_is_rejected(bare_store):
    token = bare_store.create_session()
    with pytest.raises(NoFiles):
        receive_files(bare_store, token, [])


def test_invalid_name_rejects_whole_batch(bare_store):
    token = bare_store.create_session()
    with pytest.raises(InvalidName):
        receive_files(bare_store, token, [part("ok.txt", b"x"), part("../escape.txt", b"y")])
    assert list((bare_store.root / token).iterdir()) == []
    assert not (bare_store.root / "escape.txt").exists()


def test_oversized_file_leaves_nothing_visible(bare_store):
    token = bare_store.create_session()
    too_big = b"z" * (bare_store.max_file_size + 1)

    with pytest.raises(PayloadTooLarge) as exc:
        receive_files(bare_store, token, [part("small.txt", b"ok"), part("big.bin", too_big)])

    assert exc.value.max_bytes == bare_store.max_file_size
    assert list((bare_store.root / token).iterdir()) == []
    assert list(bare_store.staging_dir.iterdir()) == []
    assert bare_store.list_files(token) == []


def test_file_at_exact_limit_is_accepted(bare_store):
    token = bare_store.create_session()
    data = b"z" * bare_store.max_file_size
    assert receive_files(bare_store, token, [part("edge.bin", data)]) == [FileEntry("edge.bin", len(data))]


def test_same_name_overwrites_and_deduplicates(bare_store):
    token = bare_store.create_session()
    receive_files(bare_store, token, [part("photo.jpg", b"first"), part("other.txt", b"o")])
    receive_files(bare_store, token, [part("photo.jpg", b"second!")])

    assert (bare_store.root / token / "photo.jpg").read_bytes() == b"second!"
    assert bare_store.list_files(token) == [FileEntry("other.txt", 1), FileEntry("photo.jpg", 7)]


def test_upload_racing_reclamation_fails_loudly(bare_store):
    token = bare_store.create_session()
    staged_path = bare_store.staging_dir / "pending.uploading"
    staged_path.write_bytes(b"data")
    storage.remove(bare_store.root / token)

    with pytest.raises(NotFound):
        bare_store.publish(token, [("late.txt", staged_path, 4)])


def test_concurrent_uploads_to_same_session(bare_store):
    token = bare_store.create_session()
    errors = []

    def upload(name, data):
        try:
            receive_files(bare_store, token, [part(name, data)])
        except Exception as e:  # surfaced by the assertion below
            errors.append(e)

    threads = [
        threading.Thread(target=upload, args=("left.txt", b"L" * 300)),
        threading.Thread(target=upload, args=("right.txt", b"R" * 400)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sorted(bare_store.list_files(token), key=lambda e: e.name) == [
        FileEntry("left.txt", 300),
        FileEntry("right.txt", 400),
    ]


class TestStagedFile:

    def test_refuses_to_grow_past_cap(self, tmp_path):
        staged = StagedFile(tmp_path, max_bytes=10, filename="big.bin")
        staged.write(b"0123456789")

        with pytest.raises(PayloadTooLarge):
            staged.write(b"x")

        assert staged.size == 10
        assert not staged.path.exists()
        assert list(tmp_path.iterdir()) == []

    def test_contents_read_back_after_seek(self, tmp_path):
        staged = StagedFile(tmp_path, max_bytes=100, filename="a.txt")
        staged.write(b"hello ")
        staged.write(b"world")
        staged.seek(0)

        assert staged.read() == b"hello world"
        staged.close()
        assert staged.path.read_bytes() == b"hello world"

    def test_parsed_part_is_published_without_copying(self, bare_store, monkeypatch):
        token = bare_store.create_session()
        staged = StagedFile(bare_store.staging_dir, bare_store.max_file_size, "photo.jpg")
        staged.write(b"jpegdata")
        staged.seek(0)

        def no_copy(*args, **kwargs):
            raise AssertionError("already staged parts must not be copied again")

        monkeypatch.setattr("uploads.stage_part", no_copy)

        entries = receive_files(bare_store, token, [FileStorage(stream=staged, filename="photo.jpg")])

        assert entries == [FileEntry("photo.jpg", 8)]
        assert (bare_store.root / token / "photo.jpg").read_bytes() == b"jpegdata"
        assert not staged.path.exists()


def test_cross_device_publish_never_exposes_partial_file(bare_store, monkeypatch):
    token = bare_store.create_session()
    session_dir = bare_store.root / token
    real_replace = os.replace
    seen_in_session = []

    def replace(src, dst):
        if Path(src).parent == bare_store.staging_dir:
            raise OSError(errno.EXDEV, "Invalid cross-device link")
        seen_in_session.append(Path(src).name)
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", replace)

    receive_files(bare_store, token, [part("doc.txt", b"contents")])

    assert (session_dir / "doc.txt").read_bytes() == b"contents"
    assert [p.name for p in session_dir.iterdir()] == ["doc.txt"]
    assert len(seen_in_session) == 1
    assert seen_in_session[0].startswith(".") and seen_in_session[0].endswith(".uploading")
