import dataclasses
import logging

import numpy as np
import pytest
import tifffile as tiff

from tiffraw.config import DEFAULT_CONFIG
from tiffraw.convert import main, main_nrrd, main_raw, run_conversion
from tiffraw.errors import OutputOpenError, VolumeOpenError
from tiffraw.probe import SampleFormat
from tiffraw.scripts.sanity import generate_synthetic_stack, run_sanity


@pytest.fixture
def vol_tif(tmp_path, ramp_stack):
    path = tmp_path / "vol.tif"
    tiff.imwrite(str(path), ramp_stack, photometric="minisblack")
    return path


def test_end_to_end_nrrd(tmp_path, vol_tif, monkeypatch):
    monkeypatch.chdir(tmp_path)
    rc = main_nrrd(["vol.tif", "vol.raw", "vol.nhdr", "--no-progress"])
    assert rc == 0
    assert (tmp_path / "vol.raw").stat().st_size == 4 * 5 * 3
    text = (tmp_path / "vol.nhdr").read_text()
    assert "sizes: 4 5 3" in text
    assert "type: uint8" in text
    assert "data file: vol.raw" in text


def test_end_to_end_raw_dumps_directory(tmp_path, vol_tif, ramp_stack, capsys):
    raw = tmp_path / "vol.raw"
    rc = main_raw([str(vol_tif), str(raw), "--no-progress"])
    assert rc == 0
    assert raw.read_bytes() == ramp_stack.tobytes()
    assert "TIFF Directory 0" in capsys.readouterr().out


def test_raw_no_dump(tmp_path, vol_tif, capsys):
    rc = main_raw([str(vol_tif), str(tmp_path / "vol.raw"), "--no-dump", "--no-progress"])
    assert rc == 0
    assert "TIFF Directory" not in capsys.readouterr().out


@pytest.mark.parametrize(
    "entry, argv",
    [
        (main_raw, ["vol.tif"]),
        (main_raw, ["vol.tif", "a.raw", "b.nhdr"]),
        (main_nrrd, ["vol.tif", "a.raw"]),
        (main_nrrd, []),
        (main, ["vol.tif", "a.raw", "b.nhdr", "extra"]),
    ],
)
def test_wrong_argument_count(tmp_path, monkeypatch, capsys, entry, argv):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as info:
        entry(argv)
    assert info.value.code == 1
    assert "usage:" in capsys.readouterr().err
    assert list(tmp_path.iterdir()) == []


def test_missing_input(tmp_path, caplog):
    rc = main_nrrd([str(tmp_path / "absent.tif"), str(tmp_path / "a.raw"), str(tmp_path / "a.nhdr")])
    assert rc == 1
    assert "absent.tif" in caplog.text
    assert not (tmp_path / "a.raw").exists()


def test_unwritable_raw(tmp_path, vol_tif):
    rc = main_nrrd([str(vol_tif), str(tmp_path / "nodir" / "a.raw"), str(tmp_path / "a.nhdr"), "--no-progress"])
    assert rc == 1
    assert not (tmp_path / "a.nhdr").exists()


def test_unwritable_header_after_raw(tmp_path, vol_tif):
    raw = tmp_path / "vol.raw"
    hdr = tmp_path / "nodir" / "vol.nhdr"
    rc = main_nrrd([str(vol_tif), str(raw), str(hdr), "--no-progress"])
    assert rc == 1
    assert raw.stat().st_size == 60
    assert not hdr.exists()


def test_module_entry_with_and_without_header(tmp_path, vol_tif):
    assert main([str(vol_tif), str(tmp_path / "a.raw"), "--no-progress"]) == 0
    assert not list(tmp_path.glob("*.nhdr"))
    assert main([str(vol_tif), str(tmp_path / "b.raw"), str(tmp_path / "b.nhdr"), "--no-progress"]) == 0
    assert (tmp_path / "b.nhdr").exists()


def test_run_conversion_raises(tmp_path, vol_tif):
    cfg = dataclasses.replace(DEFAULT_CONFIG, progress=False)
    with pytest.raises(VolumeOpenError):
        run_conversion(tmp_path / "missing.tif", tmp_path / "x.raw", cfg=cfg)
    with pytest.raises(OutputOpenError):
        run_conversion(vol_tif, tmp_path / "nodir" / "x.raw", cfg=cfg)


def test_int16_volume(tmp_path, caplog):
    vol = generate_synthetic_stack((4, 6, 5), "int16") - 100
    path = tmp_path / "s.tif"
    tiff.imwrite(str(path), vol, photometric="minisblack")
    caplog.set_level(logging.INFO)
    cfg = dataclasses.replace(DEFAULT_CONFIG, progress=False)
    desc = run_conversion(path, tmp_path / "s.raw", tmp_path / "s.nhdr", cfg)
    assert desc.sample_format == SampleFormat.INT
    assert "type: int16" in (tmp_path / "s.nhdr").read_text()
    assert np.array_equal(np.fromfile(str(tmp_path / "s.raw"), dtype=np.int16).reshape(4, 6, 5), vol)
    assert "5x6x4 tiff." in caplog.text
    assert "Closing tiff" in caplog.text


@pytest.mark.parametrize("dtype", ["uint8", "uint16", "float32"])
def test_sanity_script(tmp_path, dtype):
    cfg = dataclasses.replace(DEFAULT_CONFIG, progress=False)
    assert run_sanity(str(tmp_path), shape=(3, 8, 6), dtype=dtype, cfg=cfg)


def test_write_failure_is_reported(tmp_path, vol_tif, monkeypatch, caplog):
    def disk_full(*args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("tiffraw.convert.copy_raw", disk_full)
    rc = main_nrrd([str(vol_tif), str(tmp_path / "a.raw"), str(tmp_path / "a.nhdr"), "--no-progress"])
    assert rc == 1
    assert "No space left on device" in caplog.text
    assert not (tmp_path / "a.nhdr").exists()


def test_truncated_input_exits_with_error(tmp_path, caplog):
    src = tmp_path / "t.tif"
    src.write_bytes(b"II*\x00\x08\x00\x00\x00")
    rc = main_nrrd([str(src), str(tmp_path / "a.raw"), str(tmp_path / "a.nhdr"), "--no-progress"])
    assert rc == 1
    assert "cannot open tiff" in caplog.text
    assert not (tmp_path / "a.raw").exists()
