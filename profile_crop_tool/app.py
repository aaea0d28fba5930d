"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m profile_crop_tool.app PHOTO [-o OUTPUT_DIR]
    profile-crop-tool PHOTO          (after pip install)

Opens the crop dialog on PHOTO and writes the confirmed square crop as
``<stem>-profile.jpg`` next to it (or into OUTPUT_DIR).  Exit status is 0
when a crop was saved, 1 when the user cancelled, 2 on bad input.
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from PyQt6.QtWidgets import QApplication, QFileDialog, QMessageBox

from profile_crop_tool.config import (
    IMAGE_EXTENSIONS, OUTPUT_SIZE_MAX, OUTPUT_SIZE_MIN, PREVIEW_OUTPUT_SIZES,
)
from profile_crop_tool.crop_dialog import CropDialog
from profile_crop_tool.image_io import output_filename, unique_path
from profile_crop_tool.settings import load_settings

logger = logging.getLogger(__name__)

EXIT_SAVED = 0
EXIT_CANCELLED = 1
EXIT_BAD_INPUT = 2

DARK_STYLESHEET = """
    QDialog { background: #2b2b2b; }
    QWidget { background: #2b2b2b; color: #ddd; font-size: 10pt; }
    QGroupBox { border: 1px solid #555; border-radius: 4px; margin-top: 8px; padding-top: 12px; font-weight: bold; }
    QGroupBox::title { subcontrol-origin: margin; left: 8px; padding: 0 4px; }
    QPushButton { background: #3a3a3a; border: 1px solid #555; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #4a4a4a; }
    QPushButton:pressed { background: #2a2a2a; }
    QPushButton:disabled { color: #666; }
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="profile-crop-tool",
        description="Crop a photo into a square profile picture.",
    )
    parser.add_argument("photo", nargs="?", type=Path, help="source photo (prompted if omitted)")
    parser.add_argument("-o", "--output-dir", type=Path, help="where to write the crop (default: next to the photo)")
    parser.add_argument("--size", type=int, help="output edge in pixels (default from settings, 512)")
    parser.add_argument("--preview-size", type=int, choices=PREVIEW_OUTPUT_SIZES, help="live preview edge in pixels")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def output_path_for(photo: Path, output_dir: Path | None) -> Path:
    """Return a free ``<stem>-profile.jpg`` path for the crop of *photo*."""
    directory = output_dir or photo.parent
    return unique_path(directory / output_filename(f"{photo.stem}-profile"))


def _choose_photo() -> Path | None:
    patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
    path, _ = QFileDialog.getOpenFileName(None, "Choose a photo", "", f"Images ({patterns})")
    return Path(path) if path else None


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    overrides = {}
    if args.size is not None:
        if not OUTPUT_SIZE_MIN <= args.size <= OUTPUT_SIZE_MAX:
            print(f"--size must be between {OUTPUT_SIZE_MIN} and {OUTPUT_SIZE_MAX}", file=sys.stderr)
            return EXIT_BAD_INPUT
        overrides["save_output_size"] = args.size
    if args.preview_size is not None:
        overrides["preview_output_size"] = args.preview_size
    if overrides:
        settings = replace(settings, **overrides)

    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setStyleSheet(DARK_STYLESHEET)

    photo = args.photo or _choose_photo()
    if photo is None:
        return EXIT_CANCELLED
    if not photo.is_file():
        print(f"No such file: {photo}", file=sys.stderr)
        return EXIT_BAD_INPUT
    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)

    result = {"code": EXIT_CANCELLED}

    def on_cropped(data: bytes):
        out_path = output_path_for(photo, args.output_dir)
        try:
            out_path.write_bytes(data)
        except OSError as exc:
            logger.error("Could not write %s: %s", out_path, exc)
            QMessageBox.critical(dialog, "Save Failed", f"Could not write crop:\n{exc}")
            result["code"] = EXIT_BAD_INPUT
            return
        logger.info("Saved %s", out_path)
        result["code"] = EXIT_SAVED

    def on_load_failed(error: str):
        QMessageBox.warning(dialog, "Invalid Photo", error)
        result["code"] = EXIT_BAD_INPUT
        dialog.reject()

    dialog = CropDialog(photo, settings)
    dialog.cropped.connect(on_cropped)
    dialog.load_failed.connect(on_load_failed)
    dialog.exec()
    dialog.wait_for_workers()
    return result["code"]


if __name__ == "__main__":
    sys.exit(main())
