"""PDF artifact rendering for analysis reports.

Rendering is two tasks joined together: a builder that lays the document out
with reportlab in a worker thread, and a sink that drains the produced bytes
into ``<artifact>.part``, fsyncs it and renames it into place. The artifact is
only considered durable once both have finished.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from xml.sax.saxutils import escape

import httpx
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer

from tradermind.errors.exceptions import RenderingError

logger = logging.getLogger(__name__)

CJK_TTF_NAME = "TraderMindCJK"
CJK_CID_FONT = "STSong-Light"
DEFAULT_FONT = "Helvetica"

REPORT_HEADING = "交易者心理分析报告"
REPORT_AUTHOR = "交易者心理分析系统"
REPORT_SUBJECT = "用户性格与交易习惯分析报告"

_EOF = object()


@dataclass
class ReportDocument:
    title: str
    display_name: str
    generated_on: date
    analysis_text: str
    answers: list[dict] = field(default_factory=list)


# ── Fonts ──────────────────────────────────────────────────────────────────────

class FontCache:
    """Resolve the font used for Chinese text, fetching it at most once.

    Order: cached TTF on disk, TTF downloaded from ``font_url``, reportlab's
    built-in CID font, Helvetica. Never raises.
    """

    def __init__(self, font_dir: str | Path, font_file_name: str, font_url: str | None = None,
                 download_timeout: float = 30.0):
        self.font_path = Path(font_dir) / font_file_name
        self.font_url = font_url
        self.download_timeout = download_timeout
        self._lock = asyncio.Lock()
        self._resolved: str | None = None

    async def resolve(self) -> str:
        if self._resolved is not None:
            return self._resolved
        async with self._lock:
            if self._resolved is None:
                self._resolved = await self._load()
                logger.info("Report font resolved to %s", self._resolved)
        return self._resolved

    async def _load(self) -> str:
        if not self.font_path.exists() and self.font_url:
            try:
                await self._download()
            except (httpx.HTTPError, OSError) as exc:
                logger.warning("Font download from %s failed: %s", self.font_url, exc)

        if self.font_path.exists():
            try:
                # CJK fonts are several MB; parse them off the event loop
                font = await asyncio.to_thread(TTFont, CJK_TTF_NAME, str(self.font_path))
                pdfmetrics.registerFont(font)
                return CJK_TTF_NAME
            except (TTFError, OSError) as exc:
                logger.warning("Font file %s unusable: %s", self.font_path, exc)

        try:
            pdfmetrics.registerFont(UnicodeCIDFont(CJK_CID_FONT))
            return CJK_CID_FONT
        except Exception as exc:
            logger.warning("CID font %s unavailable, using %s: %s", CJK_CID_FONT, DEFAULT_FONT, exc)
            return DEFAULT_FONT

    async def _download(self) -> None:
        self.font_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.font_path.with_name(self.font_path.name + ".download")
        try:
            async with httpx.AsyncClient(timeout=self.download_timeout, follow_redirects=True) as client:
                async with client.stream("GET", self.font_url) as resp:
                    resp.raise_for_status()
                    with tmp_path.open("wb") as fh:
                        async for chunk in resp.aiter_bytes():
                            fh.write(chunk)
            os.replace(tmp_path, self.font_path)
        finally:
            tmp_path.unlink(missing_ok=True)
        logger.info("Downloaded report font to %s", self.font_path)


# ── Layout ─────────────────────────────────────────────────────────────────────

def _para(text: str) -> str:
    return escape(text).replace("\n", "<br/>")


def _styles(font_name: str) -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    body = ParagraphStyle(
        name="ReportBody", parent=base["BodyText"], fontName=font_name,
        fontSize=12, leading=18, wordWrap="CJK",
    )
    return {
        "title": ParagraphStyle(
            name="ReportTitle", parent=base["Title"], fontName=font_name,
            fontSize=24, leading=30, alignment=TA_CENTER,
        ),
        "heading": ParagraphStyle(
            name="ReportHeading", parent=base["Heading2"], fontName=font_name,
            fontSize=16, leading=22, spaceBefore=6, spaceAfter=10,
        ),
        "body": body,
    }


def build_report_pdf(fileobj, document: ReportDocument, font_name: str) -> None:
    """Lay out the report and write the finished PDF to ``fileobj`` (blocking)."""
    styles = _styles(font_name)
    doc = SimpleDocTemplate(
        fileobj,
        pagesize=A4,
        leftMargin=50,
        rightMargin=50,
        topMargin=50,
        bottomMargin=50,
        title=document.title,
        author=REPORT_AUTHOR,
        subject=REPORT_SUBJECT,
    )

    story: list = [
        Paragraph(REPORT_HEADING, styles["title"]),
        Spacer(1, 12),
        Paragraph(_para(f"生成日期: {document.generated_on.isoformat()}"), styles["body"]),
        Spacer(1, 6),
        Paragraph(_para(f"用户: {document.display_name}"), styles["body"]),
        Spacer(1, 24),
        Paragraph("<u>分析结果</u>", styles["heading"]),
    ]
    for block in document.analysis_text.split("\n\n"):
        if block.strip():
            story.append(Paragraph(_para(block.strip()), styles["body"]))
            story.append(Spacer(1, 8))

    story.append(PageBreak())
    story.append(Paragraph("<u>问卷回答原始数据</u>", styles["heading"]))
    for index, row in enumerate(document.answers, start=1):
        story.append(Paragraph(_para(f"问题 {index}: {row['question']}"), styles["body"]))
        story.append(Paragraph(_para(f"回答: {row['answer']}"), styles["body"]))
        story.append(Paragraph(_para(f"回答时间: {row['duration']} 秒"), styles["body"]))
        story.append(Spacer(1, 10))

    doc.build(story)


# ── Build / sink join ──────────────────────────────────────────────────────────

class _QueueWriter:
    """File-like target for reportlab; hands each write to the event loop's queue."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        self._loop = loop
        self._queue = queue

    def write(self, data) -> int:
        chunk = data.encode("latin-1") if isinstance(data, str) else bytes(data)
        self._loop.call_soon_threadsafe(self._queue.put_nowait, chunk)
        return len(chunk)

    def flush(self) -> None:
        pass


def _fsync(fh) -> None:
    fh.flush()
    os.fsync(fh.fileno())


def _verify_pdf(path: Path) -> int:
    size = path.stat().st_size
    if size == 0:
        raise RenderingError(f"artifact {path.name} is empty")
    with path.open("rb") as fh:
        head = fh.read(5)
        fh.seek(max(0, size - 1024))
        tail = fh.read()
    if head != b"%PDF-" or b"%%EOF" not in tail:
        raise RenderingError(f"artifact {path.name} is not a complete PDF")
    return size


class ReportRenderer:
    """Render ``ReportDocument`` objects to PDF files."""

    def __init__(self, fonts: FontCache):
        self.fonts = fonts

    async def _build(self, writer: _QueueWriter, queue: asyncio.Queue, document: ReportDocument,
                     font_name: str) -> None:
        await asyncio.to_thread(build_report_pdf, writer, document, font_name)
        queue.put_nowait(_EOF)

    async def _drain(self, queue: asyncio.Queue, part_path: Path) -> None:
        with part_path.open("wb") as fh:
            while True:
                chunk = await queue.get()
                if chunk is _EOF:
                    break
                await asyncio.to_thread(fh.write, chunk)
            await asyncio.to_thread(_fsync, fh)

    async def render(self, path: Path, document: ReportDocument) -> int:
        """Write ``document`` to ``path``; return its size once durable on disk."""
        font_name = await self.fonts.resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        part_path = path.with_name(path.name + ".part")

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        build_task = asyncio.create_task(self._build(_QueueWriter(loop, queue), queue, document, font_name))
        sink_task = asyncio.create_task(self._drain(queue, part_path))

        rendered = False
        try:
            await asyncio.gather(build_task, sink_task)
            os.replace(part_path, path)
            size = await asyncio.to_thread(_verify_pdf, path)
            rendered = True
        except RenderingError:
            raise
        except Exception as exc:
            raise RenderingError(f"{type(exc).__name__}: {exc}") from exc
        finally:
            if not rendered:
                # Also runs on cancellation; a builder thread may still be writing into the queue
                for task in (build_task, sink_task):
                    task.cancel()
                await asyncio.gather(build_task, sink_task, return_exceptions=True)
                part_path.unlink(missing_ok=True)
                path.unlink(missing_ok=True)

        logger.info("Rendered report artifact %s (%d bytes)", path.name, size)
        return size
