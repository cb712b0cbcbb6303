from __future__ import annotations
import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_settings(ini_path: Optional[Path]):
    """Load persisted settings, from an explicit INI file when given."""
    from models.settings import AppSettings

    return AppSettings(ini_path)


def ensure_gui_application():
    """Create the QGuiApplication needed for font rendering, once."""
    from PyQt6.QtGui import QGuiApplication

    app = QGuiApplication.instance()
    if app is None:
        app = QGuiApplication(sys.argv[:1])
    return app


def read_document(path: Path) -> Optional[bytes]:
    from utils.validators import validate_file_path

    validation = validate_file_path(path, allowed_extensions=[".pdf"]).on_failure(log_error)
    if validation.is_failure():
        return None
    return validation.unwrap().read_bytes()


def write_output(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info(f"Wrote {len(data)} bytes to {path}")


def build_annotations(args, editor) -> list:
    """Build annotations from the --text, --signature and --highlight options."""
    from models.annotation import AnnotationFactory, AnnotationType, Point

    annotations = []
    for page, x, y, content in args.text or ():
        annotations.append(AnnotationFactory.create(
            AnnotationType.TEXT, int(page), Point(float(x), float(y)),
            content=content, style=editor.style_for(AnnotationType.TEXT),
        ))
    for page, x, y, content in args.signature or ():
        annotations.append(AnnotationFactory.create(
            AnnotationType.SIGNATURE, int(page), Point(float(x), float(y)),
            content=content, style=editor.style_for(AnnotationType.SIGNATURE),
        ))
    for page, x, y in args.highlight or ():
        annotations.append(AnnotationFactory.create(
            AnnotationType.HIGHLIGHT, int(page), Point(float(x), float(y)),
            extent=editor.highlight_extent, style=editor.style_for(AnnotationType.HIGHLIGHT),
        ))
    return annotations


def log_error(error) -> None:
    error.log(logger)


def command_generate(args, settings) -> int:
    from models.document import GenerationRequest
    from services.composer_service import CertificateComposer

    request = GenerationRequest(
        memo_no=args.memo_no,
        purpose=args.purpose,
        crew_name=args.crew_name,
        crew_id=args.crew_id,
        signed=args.signed,
    )
    issued_on = date.fromisoformat(args.date) if args.date else None

    result = (
        CertificateComposer(settings.composer)
        .generate(request, issued_on)
        .on_success(lambda data: write_output(args.output, data))
        .on_failure(log_error)
    )
    return 0 if result.is_success() else 1


def command_annotate(args, settings) -> int:
    from models.settings import HighlightExportPolicy
    from services.export_service import ExportOptions, ExportService

    data = read_document(args.input)
    if data is None:
        return 1

    editor = settings.editor
    policy = (
        HighlightExportPolicy.FLATTEN
        if args.flatten_highlights
        else editor.highlight_export_policy
    )
    result = (
        ExportService(editor)
        .export(data, build_annotations(args, editor), ExportOptions(highlight_policy=policy))
        .map(lambda export_result: export_result.data)
        .on_success(lambda output: write_output(args.output, output))
        .on_failure(log_error)
    )
    return 0 if result.is_success() else 1


def command_render(args, settings) -> int:
    from core.pdf_engine import PDFEngine
    from core.render_engine import RenderEngine
    from utils.validators import validate_page_number, validate_zoom_level

    data = read_document(args.input)
    if data is None:
        return 1

    load_result = PDFEngine().load(data).on_failure(log_error)
    if load_result.is_failure():
        return 1
    document = load_result.unwrap()

    editor = settings.editor
    page_result = validate_page_number(args.page, document.page_count).on_failure(log_error)
    if page_result.is_failure():
        document.close()
        return 1
    scale = validate_zoom_level(args.scale, editor.min_scale, editor.max_scale).unwrap_or(editor.default_scale)

    ensure_gui_application()
    render_result = RenderEngine(editor).render(
        document,
        page_result.unwrap(),
        scale,
        build_annotations(args, editor),
    )
    document.close()

    write_output(args.output, render_result.to_png_bytes())
    return 0


def add_annotation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--text", nargs=4, action="append", metavar=("PAGE", "X", "Y", "CONTENT"),
        help="text at document-space baseline X,Y on a one-based PAGE",
    )
    parser.add_argument(
        "--signature", nargs=4, action="append", metavar=("PAGE", "X", "Y", "CONTENT"),
    )
    parser.add_argument(
        "--highlight", nargs=3, action="append", metavar=("PAGE", "X", "Y"),
        help="highlight with its top-left corner at X,Y",
    )


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certificate-editor",
        description="Compose, annotate and render certificate PDFs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--settings", type=Path, help="INI file holding editor and composer settings")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    generate = subparsers.add_parser("generate", help="compose a job description certificate")
    generate.add_argument("--crew-name", required=True)
    generate.add_argument("--crew-id", required=True)
    generate.add_argument("--memo-no", default="")
    generate.add_argument("--purpose", default="")
    generate.add_argument("--signed", action="store_true")
    generate.add_argument("--date", help="issue date as YYYY-MM-DD (default: today)")
    generate.add_argument("-o", "--output", type=Path, required=True)
    generate.set_defaults(func=command_generate)

    annotate = subparsers.add_parser("annotate", help="flatten annotations into a PDF")
    annotate.add_argument("input", type=Path)
    add_annotation_arguments(annotate)
    annotate.add_argument("--flatten-highlights", action="store_true")
    annotate.add_argument("-o", "--output", type=Path, required=True)
    annotate.set_defaults(func=command_annotate)

    render = subparsers.add_parser("render", help="rasterize one page to PNG")
    render.add_argument("input", type=Path)
    render.add_argument("--page", type=int, default=1)
    render.add_argument("--scale", type=float, default=1.2)
    add_annotation_arguments(render)
    render.add_argument("-o", "--output", type=Path, required=True)
    render.set_defaults(func=command_render)

    return parser


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command line entry point."""
    sys.excepthook = handle_exception

    args = create_parser().parse_args(argv)
    setup_logging(args.verbose)
    settings = load_settings(args.settings)
    return args.func(args, settings)


if __name__ == "__main__":
    sys.exit(main())
