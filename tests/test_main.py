import logging
from pathlib import Path

import pytest

from mediastamp.configs import Settings
from mediastamp.main import build_parser, configure, main
from tests.media_builders import build_mkv, build_mp4, ebml_header, info_element, segment, truncated_seek_head_element

MP4_EPOCH_OFFSET = 2082844800


def test_main_renames_every_file(write_file, capsys):
    mkv = write_file("IMG_4792.mkv", build_mkv(tags=[[("com.apple.quicktime.creationdate", "2023-04-12T02:19:01Z")]]))
    mp4 = write_file("clip.mp4", build_mp4(MP4_EPOCH_OFFSET + 1000000))

    assert main([str(mkv), str(mp4)]) == 0

    assert mkv.with_name("1681265941 IMG_4792.mkv").exists()
    assert mp4.with_name("1000000 clip.mp4").exists()
    assert len(capsys.readouterr().out.splitlines()) == 2


def test_main_partial_failure_continues(write_file, caplog):
    bad = write_file("notes.txt", b"hello")
    nodate = write_file("b.mkv", build_mkv())
    good = write_file("c.mp4", build_mp4(MP4_EPOCH_OFFSET))

    with caplog.at_level(logging.ERROR):
        assert main([str(bad), str(nodate), str(good)]) == 1

    assert good.with_name("0 c.mp4").exists()
    assert bad.exists()
    assert nodate.exists()
    assert f"Error processing {bad}: unknown file type" in caplog.text
    assert f"Error processing {nodate}: unable to determine creation date" in caplog.text


def test_main_malformed_mkv_does_not_stop_batch(write_file, caplog):
    bad = write_file("a.mkv", ebml_header() + segment(truncated_seek_head_element() + info_element()))
    good = write_file("b.mp4", build_mp4(MP4_EPOCH_OFFSET + 1000000))

    with caplog.at_level(logging.ERROR):
        assert main([str(bad), str(good)]) == 1

    assert bad.exists()
    assert good.with_name("1000000 b.mp4").exists()
    assert f"Error processing {bad}" in caplog.text


def test_main_dry_run_with_offset(write_file, capsys):
    path = write_file("clip.m4v", build_mp4(MP4_EPOCH_OFFSET + 1000000))

    assert main(["--dry-run", "--tz-offset", "-3.5", str(path)]) == 0

    assert path.exists()
    assert not path.with_name("987400 clip.m4v").exists()
    assert capsys.readouterr().out.startswith(f"{path} -> {path.with_name('987400 clip.m4v')} (")


def test_main_offset_too_big_touches_nothing(write_file, monkeypatch, caplog):
    calls = []
    monkeypatch.setattr(Path, "rename", lambda self, target: calls.append(self))
    path = write_file("clip.mp4", build_mp4(MP4_EPOCH_OFFSET))

    with caplog.at_level(logging.ERROR):
        assert main(["-t", "1e9", str(path)]) == 1

    assert calls == []
    assert "offset too big" in caplog.text


def test_main_requires_paths(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2


def test_configure_overlays_flags():
    args = build_parser().parse_args(["-n", "-t", "2", "--log-level", "debug", "x.mkv"])
    config = configure(args, Settings(tz_offset=5.0, dry_run=False))

    assert config.dry_run is True
    assert config.tz_offset == 2.0
    assert config.log_level == "DEBUG"


def test_configure_keeps_settings_without_flags():
    args = build_parser().parse_args(["x.mkv"])
    config = configure(args, Settings(tz_offset=5.0, dry_run=True))

    assert config.dry_run is True
    assert config.tz_offset == 5.0
