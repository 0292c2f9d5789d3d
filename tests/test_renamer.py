from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from mediastamp.configs import RenameFlags, offset_from_hours
from mediastamp.errors import DateNotFound, RenameFailure
from mediastamp.renamer import apply_offset, generate_new_path, maybe_do_rename, process, unix_timestamp
from tests.media_builders import build_mkv, build_mp4

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _at(seconds: int) -> datetime:
    return UNIX_EPOCH + timedelta(seconds=seconds)


def test_generate_new_path():
    new_path = generate_new_path(Path("folder/IMG_4792.mkv"), _at(1681265941))
    assert new_path == Path("folder/1681265941 IMG_4792.mkv")


def test_generate_new_path_is_deterministic():
    path = Path("a/b/clip.mov")
    first = generate_new_path(path, _at(42))
    assert first == generate_new_path(path, _at(42))
    assert first.parent == path.parent


def test_generate_new_path_negative_timestamp():
    new_path = generate_new_path(Path("clip.mp4"), datetime(1904, 1, 1, tzinfo=timezone.utc))
    assert new_path == Path("-2082844800 clip.mp4")


def test_generate_new_path_without_file_name():
    with pytest.raises(ValueError):
        generate_new_path(Path("/"), _at(0))


def test_unix_timestamp_floors_fractions():
    assert unix_timestamp(_at(10) + timedelta(milliseconds=999)) == 10
    assert unix_timestamp(_at(-10) + timedelta(milliseconds=1)) == -10


def test_unix_timestamp_honours_offset():
    value = datetime(2023, 4, 11, 21, 19, 1, tzinfo=timezone(timedelta(hours=-5)))
    assert unix_timestamp(value) == 1681265941


def test_apply_offset_negative_fractional_hours():
    assert unix_timestamp(apply_offset(_at(1000000), offset_from_hours(-3.5))) == 987400


def test_apply_offset_crosses_date_boundary():
    shifted = apply_offset(datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc), offset_from_hours(2))
    assert shifted == datetime(2024, 1, 1, 1, 0, tzinfo=timezone.utc)


def test_apply_offset_overflow():
    with pytest.raises(DateNotFound):
        apply_offset(datetime(9999, 12, 31, 23, 0, tzinfo=timezone.utc), offset_from_hours(2))


def test_maybe_do_rename(tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"data")
    dst = tmp_path / "1 clip.mp4"

    maybe_do_rename(src, dst, dry_run=False)

    assert not src.exists()
    assert dst.read_bytes() == b"data"


def test_maybe_do_rename_failure(tmp_path):
    src = tmp_path / "missing.mp4"
    dst = tmp_path / "1 missing.mp4"
    with pytest.raises(RenameFailure, match="unable to rename to"):
        maybe_do_rename(src, dst, dry_run=False)


def test_process_renames_and_reports(write_file, capsys):
    path = write_file("clip.mp4", build_mp4(2082844800 + 1000000))

    new_path = process(path, RenameFlags(dry_run=False, offset=offset_from_hours(-3.5)))

    assert new_path == path.with_name("987400 clip.mp4")
    assert new_path.exists()
    assert not path.exists()
    assert capsys.readouterr().out == f"{path} -> {new_path} (Mon, 12 Jan 1970 10:16:40 +0000)\n"


def test_process_report_keeps_tag_offset(write_file, capsys):
    path = write_file(
        "IMG_4792.mkv",
        build_mkv(tags=[[("com.apple.quicktime.creationdate", "2023-04-11T21:19:01-05:00")]]),
    )

    process(path, RenameFlags(dry_run=True))

    assert "1681265941 IMG_4792.mkv (Tue, 11 Apr 2023 21:19:01 -0500)" in capsys.readouterr().out


def test_process_dry_run_never_renames(write_file, monkeypatch):
    calls = []
    monkeypatch.setattr(Path, "rename", lambda self, target: calls.append((self, target)))
    path = write_file("clip.mp4", build_mp4(2082844800))

    new_path = process(path, RenameFlags(dry_run=True))

    assert new_path == path.with_name("0 clip.mp4")
    assert calls == []
    assert path.exists()


def test_process_without_date_does_not_rename(write_file, monkeypatch):
    calls = []
    monkeypatch.setattr(Path, "rename", lambda self, target: calls.append((self, target)))
    path = write_file("clip.mkv", build_mkv())

    with pytest.raises(DateNotFound):
        process(path, RenameFlags(dry_run=False))
    assert calls == []
