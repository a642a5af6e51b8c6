"""Shared fixtures for the composer tests."""
from __future__ import annotations

import io
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import reportlab
import requests
from PIL import Image
from reportlab.pdfgen import canvas

from fonts import FontAsset, FontCatalog, Script, Weight

VERA_DIR = Path(reportlab.__file__).resolve().parent / "fonts"
VERA_BOLD = VERA_DIR / "VeraBd.ttf"
VERA_REGULAR = VERA_DIR / "Vera.ttf"


def vera_catalog() -> FontCatalog:
    """All four production families backed by reportlab's bundled Vera fonts."""
    return FontCatalog(
        [
            FontAsset("Inter-SemiBold", Script.LATIN, Weight.BOLD, VERA_BOLD),
            FontAsset("Inter-Light", Script.LATIN, Weight.REGULAR, VERA_REGULAR),
            FontAsset("Amiri-Bold", Script.ARABIC, Weight.BOLD, VERA_BOLD),
            FontAsset("Amiri-Regular", Script.ARABIC, Weight.REGULAR, VERA_REGULAR),
        ]
    )


def make_pdf(pages: int, size: tuple[float, float] = (1080.0, 1920.0)) -> bytes:
    packet = io.BytesIO()
    c = canvas.Canvas(packet, pagesize=size)
    for index in range(pages):
        c.drawString(72, 72, f"Page {index + 1}")
        c.showPage()
    c.save()
    return packet.getvalue()


def decode_png(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def pixels_near(image: Image.Image, rgb: tuple[int, int, int], tolerance: int = 12) -> list[tuple[int, int]]:
    """Coordinates of visible pixels whose colour is within *tolerance* of *rgb*."""
    rgba = image.convert("RGBA")
    width, height = rgba.size
    data = rgba.load()
    found = []
    for y in range(height):
        for x in range(width):
            r, g, b, a = data[x, y]
            if a >= 200 and abs(r - rgb[0]) <= tolerance and abs(g - rgb[1]) <= tolerance and abs(b - rgb[2]) <= tolerance:
                found.append((x, y))
    return found


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"", chunk_size: int = 4) -> None:
        self.status_code = status_code
        self.body = body
        self.chunk_size = chunk_size
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self.body), self.chunk_size):
            yield self.body[start:start + self.chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Replays scripted outcomes: a FakeResponse is returned, an exception is raised."""

    def __init__(self, outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, dict]] = []
        self.closed = False

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def get(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class StubFetcher:
    def __init__(self, payloads: dict[str, bytes] | None = None, error: BaseException | None = None) -> None:
        self.payloads = payloads or {}
        self.error = error
        self.urls: list[str] = []

    def fetch(self, url: str) -> bytes:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.payloads[url]


class _TrickleHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        body = self.server.body
        self.send_response(200)
        self.send_header("Content-Type", "application/pdf")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        for byte in body:
            if self.server.stop.wait(self.server.delay):
                break
            try:
                self.wfile.write(bytes([byte]))
                self.wfile.flush()
            except (BrokenPipeError, ConnectionResetError):
                break

    def log_message(self, format, *args) -> None:
        pass


class TrickleServer:
    """Local HTTP server that sends its body one byte every *delay* seconds."""

    def __init__(self, body: bytes, delay: float) -> None:
        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), _TrickleHandler)
        self.httpd.daemon_threads = True
        self.httpd.body = body
        self.httpd.delay = delay
        self.httpd.stop = threading.Event()
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    @property
    def url(self) -> str:
        host, port = self.httpd.server_address[:2]
        return f"http://{host}:{port}/tail.pdf"

    def __enter__(self) -> "TrickleServer":
        self._thread.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.httpd.stop.set()
        self.httpd.shutdown()
        self.httpd.server_close()
