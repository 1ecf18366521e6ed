import pytest

from doctrack.errors import ValidationError
from doctrack.schemas.documents import UploadedFile
from doctrack.services.file_validation import (
    get_file_type,
    is_previewable,
    validate_upload,
)


def _file(name="invoice.pdf", content_type="application/pdf", size=1024):
    return UploadedFile(file_name=name, content_type=content_type, content=b"x" * size)


class TestValidateUpload:
    def test_accepts_pdf(self):
        validate_upload(_file())

    def test_accepts_docx(self):
        validate_upload(
            _file(
                "contract.docx",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            )
        )

    def test_rejects_empty(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_upload(_file(size=0))

    def test_rejects_over_ten_megabytes(self):
        with pytest.raises(ValidationError, match="too large") as exc:
            validate_upload(_file(size=10 * 1024 * 1024 + 1))
        assert exc.value.status_code == 400

    def test_accepts_exactly_ten_megabytes(self):
        validate_upload(_file(size=10 * 1024 * 1024))

    @pytest.mark.parametrize("name", ["payroll.exe", "run.BAT", "setup.msi", "lib.dll"])
    def test_rejects_blocked_extensions(self, name):
        with pytest.raises(ValidationError, match="security"):
            validate_upload(_file(name=name))

    def test_blocked_extension_checked_before_mime(self):
        with pytest.raises(ValidationError, match="security"):
            validate_upload(_file(name="payroll.exe", content_type="application/x-msdownload"))

    def test_rejects_mime_outside_allow_list(self):
        with pytest.raises(ValidationError, match="format not allowed"):
            validate_upload(_file(name="notes.txt", content_type="text/plain"))

    def test_rejects_missing_mime(self):
        with pytest.raises(ValidationError):
            validate_upload(_file(content_type=None))


class TestFileType:
    def test_extension_lowercased(self):
        assert get_file_type("Report.PDF") == "pdf"

    def test_no_extension(self):
        assert get_file_type("README") == "unknown"

    def test_previewable(self):
        assert is_previewable("pdf") is True
        assert is_previewable("PNG") is True
        assert is_previewable("docx") is False
