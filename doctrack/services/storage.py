import logging
import secrets
import time

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from doctrack.config import settings
from doctrack.errors import StorageError

logger = logging.getLogger(__name__)


def _describe(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code == "NoSuchBucket":
            return f"Bucket not found: {settings.s3_bucket_name}"
        if code in ("NoSuchKey", "404"):
            return "Object not found in storage"
        message = exc.response.get("Error", {}).get("Message") or code
        return f"Storage request failed: {message}"
    return f"Storage unavailable: {exc}"


class StorageService:
    @staticmethod
    def is_configured() -> bool:
        return bool(
            settings.s3_endpoint_url
            and settings.s3_access_key
            and settings.s3_secret_key
        )

    @staticmethod
    def _get_client():  # type: ignore[return]
        if not StorageService.is_configured():
            raise StorageError(
                "S3 storage is not configured. "
                "Set S3_ENDPOINT_URL, S3_ACCESS_KEY, and S3_SECRET_KEY."
            )
        return boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            region_name=settings.s3_region,
            config=Config(signature_version="s3v4"),
        )

    @staticmethod
    def generate_storage_key(company_id: str, file_name: str) -> str:
        ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"
        stamp = int(time.time() * 1000)
        return f"{company_id}/documents/{stamp}-{secrets.token_hex(4)}.{ext}"

    @staticmethod
    def upload(storage_key: str, content: bytes, mime_type: str | None) -> None:
        client = StorageService._get_client()
        params = {
            "Bucket": settings.s3_bucket_name,
            "Key": storage_key,
            "Body": content,
        }
        if mime_type:
            params["ContentType"] = mime_type
        try:
            client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            logger.error("Upload of %s failed: %s", storage_key, e)
            raise StorageError(_describe(e))
        logger.info("Uploaded %d bytes to %s", len(content), storage_key)

    @staticmethod
    def download(storage_key: str) -> bytes:
        client = StorageService._get_client()
        try:
            response = client.get_object(
                Bucket=settings.s3_bucket_name, Key=storage_key
            )
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            logger.error("Download of %s failed: %s", storage_key, e)
            raise StorageError(_describe(e))

    @staticmethod
    def create_signed_read_url(storage_key: str, ttl_seconds: int | None = None) -> str:
        client = StorageService._get_client()
        try:
            url: str = client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": settings.s3_bucket_name,
                    "Key": storage_key,
                },
                ExpiresIn=ttl_seconds or settings.s3_presigned_url_expiry,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(_describe(e))
        return url

    @staticmethod
    def delete(storage_key: str) -> None:
        client = StorageService._get_client()
        try:
            client.delete_object(Bucket=settings.s3_bucket_name, Key=storage_key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(_describe(e))
        logger.info("Deleted blob %s", storage_key)


storage = StorageService()
