import argparse
import io
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.colors import Color
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from autofit import FitResult, FitState, FontPair, NameColors, render_name, render_salutation
from errors import ComposerError, ConfigurationError, MalformedTailError, TemplateNotFoundError
from fonts import FontCatalog
from logging_setup import configure_logging, get_logger
from placement import Placement, PlacementSpec, place, scale_to_max_width
from settings import Settings
from tail_fetcher import RemoteTailFetcher
from text_raster import Direction, RasterResult, StyleSpec

logger = get_logger(__name__)

# Design-file constants, in design pixels (1 px == 1 PDF point on the template).
SALUTATION_FONT_SIZE = 64
SALUTATION_COLOR = "#967E5A"
SALUTATION_DESIGN_TOP = 1006
DESIGN_LEFT = 126
PAGE_RIGHT_MARGIN = 126
NAME_FONT_SIZE = 128
NAME_FIRST_COLOR = SALUTATION_COLOR
NAME_REST_COLOR = "#302525"
NAME_DESIGN_TOP = 1059
NAME_MAX_WIDTH = 968
NAME_MIN_FONT_SIZE = 56


class Language(str, Enum):
    ENGLISH = "English"
    ARABIC = "Arabic"


@dataclass(frozen=True)
class LanguageProfile:
    salutation: str
    fonts: FontPair
    direction: Direction
    tail_url: str
    fallback_notice: str


def language_profile(language: Language, settings: Settings) -> LanguageProfile:
    if Language(language) is Language.ARABIC:
        return LanguageProfile(
            salutation="عزيزي",
            fonts=FontPair(bold="Amiri-Bold", regular="Amiri-Regular"),
            direction=Direction.RTL,
            tail_url=settings.ar_tail_url,
            fallback_notice="نحن نقوم بإعداد العرض التقديمي الخاص بك. سيرسله لك متخصصنا قريباً.",
        )
    return LanguageProfile(
        salutation="Dear",
        fonts=FontPair(bold="Inter-SemiBold", regular="Inter-Light"),
        direction=Direction.LTR,
        tail_url=settings.eng_tail_url,
        fallback_notice="We are preparing your presentation. Our specialist will send it to you shortly.",
    )


@dataclass(frozen=True)
class CompositionReport:
    page_width: float
    page_height: float
    salutation: Placement
    name: Placement
    name_fit: FitState
    name_font_size: int
    tail_pages: int
    total_pages: int


@dataclass(frozen=True)
class ComposedDocument:
    data: bytes
    report: CompositionReport


def to_ascii_slug(value: str, fallback: str = "file") -> str:
    ascii_text = unicodedata.normalize("NFKD", value or "")
    ascii_text = re.sub(r"[^\x00-\x7F]", "_", ascii_text)
    ascii_text = re.sub(r"[_\s]+", "_", ascii_text).strip("_")
    return ascii_text or fallback


def delivery_filename(name: str) -> str:
    base = re.sub(r"\s+", "_", name or "Client")
    return to_ascii_slug(f"{base}_HGS.pdf")


def draw_anchor(c: canvas.Canvas, x: float, y: float) -> None:
    c.saveState()
    c.setStrokeColor(Color(1, 0, 0, alpha=0.8))
    c.setLineWidth(0.7)
    c.line(x - 6, y, x + 6, y)
    c.line(x, y - 6, x, y + 6)
    c.restoreState()


def draw_overlay(
    page_w: float,
    page_h: float,
    images: list[tuple[RasterResult, Placement]],
    debug: bool = False,
) -> bytes:
    packet = io.BytesIO()
    c = canvas.Canvas(packet, pagesize=(page_w, page_h))

    for raster, placement in images:
        c.drawImage(
            ImageReader(io.BytesIO(raster.data)),
            placement.x,
            placement.y,
            width=placement.width,
            height=placement.height,
            mask="auto",
        )
        if debug:
            draw_anchor(c, placement.x, placement.y)
            c.saveState()
            c.setStrokeColor(Color(0, 0, 1, alpha=0.35))
            c.setLineWidth(0.6)
            c.rect(placement.x, placement.y, placement.width, placement.height, stroke=1, fill=0)
            c.restoreState()

    c.showPage()
    c.save()
    packet.seek(0)
    return packet.read()


class DocumentComposer:
    """Builds the personalised presentation for one (name, language) pair.

    The composer holds only read-only collaborators, so one instance can
    serve concurrent requests.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: FontCatalog,
        fetcher: RemoteTailFetcher | None = None,
        debug: bool = False,
    ) -> None:
        self.settings = settings
        self.catalog = catalog
        self.fetcher = fetcher or RemoteTailFetcher.from_settings(settings)
        self.debug = debug

    def compose(self, name: str, language: Language) -> bytes:
        return self.compose_with_report(name, language).data

    def compose_with_report(self, name: str, language: Language) -> ComposedDocument:
        language = Language(language)
        logger.info("Composing presentation: %s, %s", language.value, name)

        template_path = Path(self.settings.template_path)
        if not template_path.is_file():
            raise TemplateNotFoundError(f"Template PDF not found: {template_path}")

        try:
            reader = PdfReader(str(template_path))
            template_pages = len(reader.pages)
        except (PyPdfError, ValueError, KeyError) as exc:
            raise ConfigurationError(f"Template PDF is unreadable: {template_path}: {exc}") from exc
        if not template_pages:
            raise ConfigurationError(f"Template PDF has no pages: {template_path}")
        writer = PdfWriter()
        page = writer.add_page(reader.pages[0])
        page_w = float(page.mediabox.width)
        page_h = float(page.mediabox.height)

        profile = language_profile(language, self.settings)

        salutation = render_salutation(
            self.catalog,
            profile.salutation,
            StyleSpec(profile.fonts.bold, SALUTATION_FONT_SIZE, SALUTATION_COLOR, profile.direction),
        )
        salutation_at = self._place(salutation.width, salutation.height, SALUTATION_DESIGN_TOP, page_w, page_h, profile)

        name_fit = render_name(
            self.catalog,
            str(name or ""),
            NAME_FONT_SIZE,
            profile.fonts,
            NameColors(NAME_FIRST_COLOR, NAME_REST_COLOR),
            profile.direction,
            max_width=NAME_MAX_WIDTH,
            min_size=NAME_MIN_FONT_SIZE,
        )
        name_w, name_h = scale_to_max_width(name_fit.raster.width, name_fit.raster.height, NAME_MAX_WIDTH)
        name_at = self._place(name_w, name_h, NAME_DESIGN_TOP, page_w, page_h, profile)

        overlay_bytes = draw_overlay(
            page_w,
            page_h,
            [(salutation, salutation_at), (name_fit.raster, name_at)],
            debug=self.debug,
        )
        page.merge_page(PdfReader(io.BytesIO(overlay_bytes)).pages[0])
        logger.info("First page ready, fetching tail...")

        tail_pages = self._append_tail(writer, self.fetcher.fetch(profile.tail_url))

        out = io.BytesIO()
        writer.write(out)
        total_pages = len(writer.pages)
        logger.info("Presentation assembled: %d page(s)", total_pages)

        return ComposedDocument(
            data=out.getvalue(),
            report=self._report(page_w, page_h, salutation_at, name_at, name_fit, tail_pages, total_pages),
        )

    def _place(
        self,
        width: float,
        height: float,
        design_top: float,
        page_w: float,
        page_h: float,
        profile: LanguageProfile,
    ) -> Placement:
        return place(
            PlacementSpec(
                design_top=design_top,
                design_left=DESIGN_LEFT,
                right_margin=PAGE_RIGHT_MARGIN,
                element_width=width,
                element_height=height,
                page_width=page_w,
                page_height=page_h,
                direction=profile.direction,
            )
        )

    @staticmethod
    def _append_tail(writer: PdfWriter, tail_bytes: bytes) -> int:
        try:
            tail = PdfReader(io.BytesIO(tail_bytes))
            pages = list(tail.pages)
        except (PyPdfError, ValueError, KeyError) as exc:
            raise MalformedTailError(f"Tail document is not a readable PDF: {exc}") from exc
        for tail_page in pages:
            writer.add_page(tail_page)
        return len(pages)

    @staticmethod
    def _report(
        page_w: float,
        page_h: float,
        salutation_at: Placement,
        name_at: Placement,
        name_fit: FitResult,
        tail_pages: int,
        total_pages: int,
    ) -> CompositionReport:
        return CompositionReport(
            page_width=page_w,
            page_height=page_h,
            salutation=salutation_at,
            name=name_at,
            name_fit=name_fit.state,
            name_font_size=name_fit.size,
            tail_pages=tail_pages,
            total_pages=total_pages,
        )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Personalise the template's first page and append the language tail PDF."
    )
    parser.add_argument("--name", required=True, help="Recipient name drawn on the first page.")
    parser.add_argument(
        "--language",
        default=Language.ENGLISH.value,
        choices=[lang.value for lang in Language],
        help="Presentation language.",
    )
    parser.add_argument("--output", help="Output PDF path (defaults to the delivery file name).")
    parser.add_argument("--template", help="Template PDF path (overrides TEMPLATE_PATH).")
    parser.add_argument("--font-dir", help="Directory with the TTF fonts (overrides FONT_DIR).")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Draw anchors and boxes around the overlays for calibration.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = Settings.from_env()
    overrides = {}
    if args.template:
        overrides["template_path"] = Path(args.template)
    if args.font_dir:
        overrides["font_dir"] = Path(args.font_dir)
    if overrides:
        settings = settings.model_copy(update=overrides)
    configure_logging(settings.log_level)

    catalog = FontCatalog.load(settings.font_dir)
    composer = DocumentComposer(settings, catalog, debug=args.debug)
    output_path = Path(args.output or delivery_filename(args.name))

    try:
        result = composer.compose_with_report(args.name, Language(args.language))
    except ComposerError as exc:
        logger.error("Composition failed: %s", exc)
        raise SystemExit(1) from exc

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.data)
    report = result.report
    print(f"Wrote: {output_path}")
    print(
        f"Pages: {report.total_pages} (1 + {report.tail_pages} tail)  "
        f"Name size: {report.name_font_size}px ({report.name_fit.value})"
    )


if __name__ == "__main__":
    main()
