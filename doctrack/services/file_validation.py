from doctrack.config import settings
from doctrack.errors import ValidationError
from doctrack.schemas.documents import UploadedFile


def get_allowed_types() -> set[str]:
    return set(settings.upload_allowed_types)


def get_blocked_extensions() -> set[str]:
    return {ext.lower() for ext in settings.upload_blocked_extensions}


def get_file_type(file_name: str) -> str:
    if "." not in file_name:
        return "unknown"
    return file_name.rsplit(".", 1)[-1].lower() or "unknown"


def validate_upload(file: UploadedFile) -> None:
    if file.size == 0:
        raise ValidationError("File is empty")

    if file.size > settings.upload_max_size_bytes:
        raise ValidationError(
            f"File too large. Maximum size: "
            f"{settings.upload_max_size_bytes // 1024 // 1024}MB",
            details={"size": file.size},
        )

    name = file.file_name.lower()
    for ext in get_blocked_extensions():
        if name.endswith(ext):
            raise ValidationError(
                "File type not allowed for security reasons",
                details={"extension": ext},
            )

    allowed_types = get_allowed_types()
    if file.content_type not in allowed_types:
        raise ValidationError(
            "File format not allowed. Use PDF, DOC, DOCX, XLS, XLSX, JPG or PNG",
            details={"content_type": file.content_type},
        )


def is_previewable(file_type: str) -> bool:
    return file_type.lower() in set(settings.preview_file_types)
