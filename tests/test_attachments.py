"""Tests for attachment lookup and PDF merging."""

from io import BytesIO

import pytest
from pypdf import PdfReader, PdfWriter

from sheets_service.services.attachments import collect_attachment_files, merge_pdfs, merge_with_attachments


def _pdf(pages=1, width=200) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=300)
    output = BytesIO()
    writer.write(output)
    return output.getvalue()


def _page_count(data: bytes) -> int:
    return len(PdfReader(BytesIO(data)).pages)


@pytest.fixture
def files_dir(tmp_path):
    root = tmp_path / "registration"
    (root / "401").mkdir(parents=True)
    (root / "501").mkdir(parents=True)
    (root / "401" / "b_projeto.PDF").write_bytes(_pdf(2))
    (root / "401" / "a_rg.pdf").write_bytes(_pdf(1))
    (root / "401" / "foto.jpg").write_bytes(b"not a pdf")
    (root / "501" / "orcamento.pdf").write_bytes(_pdf(1, width=400))
    return root


class TestCollectAttachmentFiles:
    def test_pdfs_only_in_phase_order(self, files_dir):
        files = collect_attachment_files([501, 401], str(files_dir))
        assert len(files) == 3
        # 501 first, then 401 sorted by name
        assert PdfReader(BytesIO(files[0])).pages[0].mediabox.width == 400
        assert _page_count(files[1]) == 1
        assert _page_count(files[2]) == 2

    def test_same_registration_read_once(self, files_dir):
        assert len(collect_attachment_files([401, 401, 401], str(files_dir))) == 2

    def test_missing_directory(self, files_dir):
        assert collect_attachment_files([999], str(files_dir)) == []


class TestMergePdfs:
    def test_pass_through_without_attachments(self):
        main = _pdf(1)
        assert merge_pdfs(main, []) is main

    def test_pages_appended(self):
        merged = merge_pdfs(_pdf(2), [_pdf(1), _pdf(3)])
        assert _page_count(merged) == 6

    def test_broken_attachment_skipped(self):
        merged = merge_pdfs(_pdf(1), [b"%PDF-garbage", _pdf(2)])
        assert _page_count(merged) == 3


@pytest.mark.asyncio
async def test_merge_with_attachments(files_dir):
    merged = await merge_with_attachments(_pdf(1), [401, 501], str(files_dir))
    assert _page_count(merged) == 5


@pytest.mark.asyncio
async def test_merge_with_attachments_no_files(tmp_path):
    main = _pdf(1)
    assert await merge_with_attachments(main, [1], str(tmp_path)) == main
