import json
import zipfile

import pytest

from stickerkit.cli import main
from stickerkit.config import get_config
from stickerkit.models import GridLayout
from stickerkit.processors import BackgroundRemover, ProcessingContext, SheetSlicer, StickerExporter
from stickerkit.utils.image_utils import decode_image, load_image, save_image

from conftest import disk, solid

RED = (210, 40, 40, 255)


@pytest.fixture(autouse=True)
def small_output(monkeypatch):
    monkeypatch.setenv("STICKER_WIDTH", "60")
    monkeypatch.setenv("STICKER_HEIGHT", "60")
    monkeypatch.setenv("MAIN_IMAGE_SIZE", "30")


def write_sheet(path, cols=4, rows=2, cell=60):
    """White sheet with one red disk per cell."""
    sheet = solid(cols * cell, rows * cell, (255, 255, 255, 255))
    for r in range(rows):
        for c in range(cols):
            disk(sheet, c * cell + cell // 2, r * cell + cell // 2, cell * 0.3, RED)
    return save_image(sheet, path)


def test_processors_end_to_end(tmp_path):
    source = write_sheet(tmp_path / "cats.png")
    context = ProcessingContext(config=get_config(), layout=GridLayout(4, 2))
    context.setup_paths([source], tmp_path / "out")

    assert SheetSlicer(context).run()
    assert len(context.sheet) == 8
    assert context.stats.layout_method == "manual"

    assert BackgroundRemover(context, tolerance=20).run()
    assert [t.sticker_number for t in context.stats.sticker_timings] == list(range(1, 9))
    assert all(t.success and t.changed for t in context.stats.sticker_timings)

    assert StickerExporter(context, archive_prefix="cats").run()
    assert context.output_dir == tmp_path / "out" / "cats"
    assert context.archive_path == context.output_dir / "cats_set.zip"
    assert context.stats.files_written == 9

    with zipfile.ZipFile(context.archive_path) as zf:
        names = zf.namelist()
        sticker = decode_image(zf.read("line_stickers/03.png"))
        main_icon = decode_image(zf.read("line_stickers/main.png"))

    assert names == [f"line_stickers/{i:02d}.png" for i in range(1, 9)] + ["line_stickers/main.png"]
    assert sticker.size == (60, 60)
    assert sticker.get_pixel(0, 0)[3] == 0
    assert sticker.get_pixel(30, 30) == RED
    assert main_icon.size == (30, 30)


def test_exporter_requires_sheet(tmp_path):
    context = ProcessingContext(config=get_config())
    context.setup_paths([tmp_path / "x.png"], tmp_path)
    assert not StickerExporter(context).run()


def test_slicer_rejects_missing_source(tmp_path):
    context = ProcessingContext(config=get_config())
    context.setup_paths([tmp_path / "missing.png"], tmp_path)
    assert not SheetSlicer(context).run()
    assert context.sheet is None


def test_cli_single_sheet(tmp_path):
    source = write_sheet(tmp_path / "sheet.png")
    out = tmp_path / "out"

    code = main([str(source), "-o", str(out), "--cols", "4", "--rows", "2", "--auto-remove", "--prefix", "demo"])

    assert code == 0
    archive = out / "sheet" / "demo_set.zip"
    assert archive.exists()
    with zipfile.ZipFile(archive) as zf:
        assert len(zf.namelist()) == 9
    assert load_image(out / "sheet" / "01.png").get_pixel(1, 1)[3] == 0


def test_cli_stacks_inputs_vertically(tmp_path):
    top = write_sheet(tmp_path / "a.png", cols=4, rows=1)
    bottom = write_sheet(tmp_path / "b.png", cols=4, rows=1)
    out = tmp_path / "out"

    code = main([str(top), str(bottom), "-o", str(out), "--cols", "4", "--rows", "2", "--no-zip", "--main-index", "5"])

    assert code == 0
    files = sorted(p.name for p in (out / "a").iterdir())
    assert files == [f"{i:02d}.png" for i in range(1, 9)] + ["main.png"]
    # Without removal every sticker stays opaque
    assert load_image(out / "a" / "08.png").get_pixel(0, 0) == (255, 255, 255, 255)


def test_cli_each_input_separately(tmp_path):
    write_sheet(tmp_path / "in" / "one.png", cols=2, rows=1)
    write_sheet(tmp_path / "in" / "two.png", cols=2, rows=1)
    out = tmp_path / "out"

    code = main([str(tmp_path / "in"), "-o", str(out), "--each", "--cols", "2", "--rows", "1", "--no-main"])

    assert code == 0
    for name in ("one", "two"):
        with zipfile.ZipFile(out / name / "sticker_set.zip") as zf:
            assert zf.namelist() == ["line_stickers/01.png", "line_stickers/02.png"]


def test_cli_without_images(tmp_path):
    (tmp_path / "empty").mkdir()
    assert main([str(tmp_path / "empty")]) == 2


def test_cli_cols_require_rows(tmp_path):
    source = write_sheet(tmp_path / "sheet.png")
    with pytest.raises(SystemExit):
        main([str(source), "--cols", "4"])


def test_cli_invalid_trim_fails(tmp_path):
    source = write_sheet(tmp_path / "sheet.png")
    assert main([str(source), "-o", str(tmp_path / "out"), "--trim-top", "0.6", "--trim-bottom", "0.4"]) == 1


def test_debug_mode_writes_detection(tmp_path, monkeypatch):
    monkeypatch.setenv("DEBUG", "1")
    source = write_sheet(tmp_path / "sheet.png")
    context = ProcessingContext(config=get_config())
    context.setup_paths([source], tmp_path / "out")

    assert SheetSlicer(context).run()
    debug_dir = context.output_dir / "debug"
    layout = json.loads((debug_dir / "layout.json").read_text(encoding="utf-8"))

    assert layout["cols"] * layout["rows"] == len(context.sheet)
    assert (debug_dir / "grid_overlay.png").exists()
