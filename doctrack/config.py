import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


_DEFAULT_ALLOWED_TYPES = ",".join(
    [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "image/jpeg",
        "image/png",
    ]
)


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/doctrack"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # Upload validation
    upload_max_size_bytes: int = int(
        os.getenv("UPLOAD_MAX_SIZE_BYTES", str(10 * 1024 * 1024))
    )  # 10MB
    upload_allowed_types: tuple[str, ...] = _csv(
        os.getenv("UPLOAD_ALLOWED_TYPES", _DEFAULT_ALLOWED_TYPES)
    )
    upload_blocked_extensions: tuple[str, ...] = _csv(
        os.getenv(
            "UPLOAD_BLOCKED_EXTENSIONS", ".exe,.bat,.sh,.cmd,.msi,.app,.dll,.com"
        )
    )
    preview_file_types: tuple[str, ...] = _csv(
        os.getenv("PREVIEW_FILE_TYPES", "pdf,jpg,jpeg,png")
    )

    # S3 / MinIO settings
    s3_endpoint_url: str = os.getenv("S3_ENDPOINT_URL", "")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "documents")
    s3_region: str = os.getenv("S3_REGION", "us-east-1")
    s3_presigned_url_expiry: int = int(os.getenv("S3_PRESIGNED_URL_EXPIRY", "3600"))

    # Auth service (GoTrue compatible)
    auth_url: str = os.getenv("AUTH_URL", "")
    auth_api_key: str = os.getenv("AUTH_API_KEY", "")
    auth_service_role_key: str = os.getenv("AUTH_SERVICE_ROLE_KEY", "")
    auth_timeout_seconds: float = float(os.getenv("AUTH_TIMEOUT_SECONDS", "10"))

    # Derivation
    reroute_status: str = os.getenv("REROUTE_STATUS", "derived")
    document_url_template: str = os.getenv(
        "DOCUMENT_URL_TEMPLATE", "/dashboard/documents/{document_id}"
    )

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv(
        "CELERY_RESULT_BACKEND", "redis://localhost:6379/0"
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "false").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    # Branding
    brand_name: str = os.getenv("BRAND_NAME", "DocTrack")
    brand_tagline: str = os.getenv("BRAND_TAGLINE", "Document routing and traceability")


settings = Settings()
