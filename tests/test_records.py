import os

import pytest

from shareden.shares.errors import ShareIOError, ShareNotFoundError, ShareValidationError
from shareden.shares.models import Share, ShareCreate
from shareden.shares.records import ShareRecordStore, parse_record, render_record


@pytest.fixture
def store(tmp_path):
    base = tmp_path / "shares"
    base.mkdir()
    return ShareRecordStore(str(base))


def test_add_assigns_id_and_keeps_fields(store):
    shares = store.add(ShareCreate(name="media", path="/srv/media", comment="Family", quota="10gb"))

    assert len(shares) == 1
    share = shares[0]
    assert len(share.id) == 32
    assert share.name == "media"
    assert share.path == "/srv/media"
    assert share.comment == "Family"
    assert share.quota == "10GB"
    assert os.path.exists(store.record_path("media"))


def test_ids_are_unique(store):
    store.add(ShareCreate(name="a", path="/srv/a"))
    store.add(ShareCreate(name="b", path="/srv/b"))
    ids = [s.id for s in store.list()]
    assert len(set(ids)) == 2


def test_record_round_trip():
    share = Share(
        id="abc123",
        name="media",
        path="/srv/media",
        comment="Family media",
        guest_ok=True,
        read_only=False,
        browsable=False,
        quota="1T",
        advanced_settings="valid users = @family\n    veto files = /.DS_Store/",
    )
    assert parse_record(render_record(share)) == share


def test_duplicate_name_rejected_case_insensitive(store):
    store.add(ShareCreate(name="Media", path="/srv/media"))
    before = store.record_files()

    with pytest.raises(ShareValidationError) as exc:
        store.add(ShareCreate(name="media", path="/srv/other"))

    assert "name" in exc.value.errors
    assert store.record_files() == before


@pytest.mark.parametrize("name", ["", "global", "Printers", ".hidden", "a/b", "x[y]"])
def test_invalid_names(store, name):
    with pytest.raises(ShareValidationError) as exc:
        store.add(ShareCreate(name=name, path="/srv/x"))
    assert "name" in exc.value.errors
    assert store.record_files() == []


def test_errors_are_reported_per_field(store):
    with pytest.raises(ShareValidationError) as exc:
        store.add(ShareCreate(name="", path="relative", quota="lots"))
    assert set(exc.value.errors) == {"name", "path", "quota"}


def test_advanced_settings_cannot_open_a_section(store):
    with pytest.raises(ShareValidationError) as exc:
        store.add(ShareCreate(name="a", path="/srv/a", advanced_settings="[global]\nguest account = root"))
    assert "advanced_settings" in exc.value.errors


def test_update_unknown_id(store):
    store.add(ShareCreate(name="a", path="/srv/a"))
    before = store.list()

    with pytest.raises(ShareNotFoundError):
        store.update(Share(id="missing", name="b", path="/srv/b"))

    assert store.list() == before


def test_update_keeps_id_and_renames_record(store):
    created = store.add(ShareCreate(name="old", path="/srv/old"))[0]

    shares = store.update(Share(id=created.id, name="new", path="/srv/new", quota="5G"))

    assert len(shares) == 1
    assert shares[0].id == created.id
    assert shares[0].name == "new"
    assert shares[0].quota == "5G"
    assert not os.path.exists(store.record_path("old"))
    assert os.path.exists(store.record_path("new"))


def test_update_may_keep_its_own_name(store):
    created = store.add(ShareCreate(name="same", path="/srv/a"))[0]
    shares = store.update(Share(id=created.id, name="same", path="/srv/b"))
    assert shares[0].path == "/srv/b"


def test_remove_deletes_exactly_one(store):
    a = store.add(ShareCreate(name="a", path="/srv/a"))[0]
    store.add(ShareCreate(name="b", path="/srv/b"))

    shares = store.remove(a.id)

    assert [s.name for s in shares] == ["b"]
    assert store.record_files() == ["b.conf"]


def test_remove_unknown_id(store):
    with pytest.raises(ShareNotFoundError):
        store.remove("missing")


def test_hand_written_record(store):
    with open(store.record_path("manual"), "w") as f:
        f.write(
            "[manual]\n"
            "    path = /srv/manual\n"
            "    writable = yes\n"
            "    public = yes\n"
            "    create mask = 0660\n"
        )

    share = store.list()[0]
    assert share.name == "manual"
    assert share.read_only is False
    assert share.guest_ok is True
    assert share.browsable is True
    assert share.advanced_settings == "create mask = 0660"
    # Stable across reads even without an id comment
    assert store.list()[0].id == share.id


def test_unreadable_record_is_skipped(store):
    store.add(ShareCreate(name="good", path="/srv/good"))
    with open(store.record_path("broken"), "w") as f:
        f.write("this is not samba\n")

    assert [s.name for s in store.list()] == ["good"]


def test_write_failure_is_an_io_error(tmp_path):
    store = ShareRecordStore(str(tmp_path / "missing"))
    with pytest.raises(ShareIOError):
        store.add(ShareCreate(name="a", path="/srv/a"))
    assert store.list() == []
