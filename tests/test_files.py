from __future__ import annotations

import os
import time

from common.files import remove_files, sweep_temp_dir, temp_path


def test_temp_path_lives_in_media_dir(media_temp_dir) -> None:
    path = temp_path("tts", ".mp3")
    assert path.parent == media_temp_dir.resolve()
    assert path.name.startswith("tts_") and path.suffix == ".mp3"


def test_remove_files_is_best_effort(tmp_path) -> None:
    present = tmp_path / "a.mp4"
    present.write_bytes(b"x")
    assert remove_files([present, tmp_path / "missing.mp4", None]) == 1
    assert not present.exists()


def test_sweep_temp_dir_only_removes_old_files(tmp_path) -> None:
    old = tmp_path / "old.jpg"
    new = tmp_path / "new.jpg"
    for path in (old, new):
        path.write_bytes(b"x")
    stamp = time.time() - 3 * 3600
    os.utime(old, (stamp, stamp))

    assert sweep_temp_dir(2, base=tmp_path) == 1
    assert new.exists() and not old.exists()
