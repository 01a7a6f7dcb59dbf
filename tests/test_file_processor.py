import io
import pytest
from docx import Document
from profile_engine.file_processor import (
    DOCX_TYPE,
    PDF_TYPE,
    TEXT_TYPE,
    DecodingFailure,
    FileProcessor,
    UnsupportedFormat,
)
from profile_engine.extractor import extract_profile
from profile_engine.normalizer import to_blocks


@pytest.fixture
def file_processor():
    return FileProcessor()


@pytest.fixture
def docx_bytes():
    doc = Document()
    doc.add_paragraph("Jane Doe")
    doc.add_paragraph("")
    doc.add_paragraph("Experience")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Python"
    table.rows[0].cells[1].text = "Docker"
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def build_pdf(page_texts):
    """Minimal uncompressed PDF with one Helvetica text line per page."""
    page_count = len(page_texts)
    font_num = 3 + 2 * page_count
    kids = " ".join(f"{3 + 2 * i} 0 R" for i in range(page_count))
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>",
    ]
    for i, page_text in enumerate(page_texts):
        stream = f"BT /F1 12 Tf 72 720 Td ({page_text}) Tj ET"
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 {font_num} 0 R >> >> /Contents {4 + 2 * i} 0 R >>"
        )
        objects.append(f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream")
    objects.append("<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = b"%PDF-1.4\n"
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{num} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return out


def test_txt_processing(file_processor):
    text = file_processor.decode("Jane Doe\n\nExperience".encode("utf-8"), TEXT_TYPE)
    assert text == "Jane Doe\n\nExperience"


def test_txt_processing_ignores_content_type_parameters(file_processor):
    text = file_processor.decode("\ufeffJane Doe".encode("utf-8"), "text/plain; charset=utf-8")
    assert text == "Jane Doe"


def test_txt_processing_invalid_utf8(file_processor):
    with pytest.raises(DecodingFailure):
        file_processor.decode(b"\xff\xfe\xfa", TEXT_TYPE)


def test_txt_processing_crlf_line_endings(file_processor):
    data = b"Jane Doe\r\n\r\nSkills: Python, Go\r\n\r\nHobbies: chess, hiking"
    text = file_processor.decode(data, TEXT_TYPE)
    assert text == "Jane Doe\n\nSkills: Python, Go\n\nHobbies: chess, hiking"
    assert extract_profile(text).skills == ("Python", "Go")

    text = file_processor.decode(b"Jane Doe\r\n\r\nSummary: Builder.\r\n\r\nInterests: sailing", TEXT_TYPE)
    assert extract_profile(text).summary == "Builder."


def test_txt_processing_whitespace_only_separator(file_processor):
    data = b"Skills: Python, Go\n   \t\nHobbies: chess, hiking"
    text = file_processor.decode(data, TEXT_TYPE)
    assert text == "Skills: Python, Go\n\nHobbies: chess, hiking"
    assert extract_profile(text).skills == ("Python", "Go")


def test_docx_processing(file_processor, docx_bytes):
    text = file_processor.decode(docx_bytes, DOCX_TYPE)
    assert to_blocks(text) == ["Jane Doe", "Experience\nPython | Docker"]


def test_corrupt_docx(file_processor):
    with pytest.raises(DecodingFailure):
        file_processor.decode(b"PK not really a zip archive", DOCX_TYPE)


def test_corrupt_pdf(file_processor):
    with pytest.raises(DecodingFailure):
        file_processor.decode(b"this is not a pdf", PDF_TYPE)


def test_pdf_processing_page_breaks(file_processor):
    text = file_processor.decode(build_pdf(["Jane Doe", "Experience"]), PDF_TYPE)
    assert "\x0c" not in text
    assert to_blocks(text) == ["Jane Doe", "Experience"]


@pytest.mark.parametrize("content_type", ["image/png", "application/msword", "", None])
def test_unsupported_format(file_processor, content_type):
    with pytest.raises(UnsupportedFormat) as exc_info:
        file_processor.decode(b"data", content_type)
    assert exc_info.value.content_type == content_type
    assert isinstance(exc_info.value, ValueError)


def test_detect_content_type(file_processor, docx_bytes):
    assert file_processor.detect_content_type(b"%PDF-1.7\n") == PDF_TYPE
    assert file_processor.detect_content_type(docx_bytes, "resume.bin") == DOCX_TYPE
    assert file_processor.detect_content_type(b"Jane Doe", "resume.TXT") == TEXT_TYPE
    assert file_processor.detect_content_type(b"Jane Doe", "photo.png") is None
    assert file_processor.detect_content_type(b"Jane Doe") is None


def test_extract_text_from_file(file_processor, tmp_path):
    path = tmp_path / "resume.txt"
    path.write_text("Jane Doe\nEngineer", encoding="utf-8")
    assert file_processor.extract_text(str(path)) == "Jane Doe\nEngineer"


def test_extract_text_docx_file(file_processor, tmp_path, docx_bytes):
    path = tmp_path / "resume.docx"
    path.write_bytes(docx_bytes)
    assert file_processor.extract_text(str(path)).endswith("Python | Docker")


def test_extract_text_missing_file(file_processor, tmp_path):
    with pytest.raises(FileNotFoundError):
        file_processor.extract_text(str(tmp_path / "missing.pdf"))


def test_extract_text_unknown_extension(file_processor, tmp_path):
    path = tmp_path / "resume.odt"
    path.write_bytes(b"plain bytes")
    with pytest.raises(UnsupportedFormat):
        file_processor.extract_text(str(path))
