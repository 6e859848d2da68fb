import boto3
from botocore.exceptions import ClientError
from app.config import settings
from typing import Optional
from urllib.parse import urlparse
import logging
import uuid

logger = logging.getLogger(__name__)

OBJECT_PATH_PREFIX = "/objects/"
UPLOAD_KEY_PREFIX = "uploads"
MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


class S3Storage:
    def __init__(self):
        if not all([settings.aws_access_key_id, settings.aws_secret_access_key, settings.s3_bucket_name]):
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    def create_upload_url(self, content_type: Optional[str] = None) -> dict:
        """Presigned PUT URL for a new object, plus the path clients store on the entity"""
        key = f"{UPLOAD_KEY_PREFIX}/{uuid.uuid4()}"
        params = {"Bucket": self.bucket_name, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        try:
            upload_url = self.s3_client.generate_presigned_url(
                "put_object",
                Params=params,
                ExpiresIn=settings.upload_url_ttl_seconds,
            )
        except ClientError as e:
            logger.error(f"Failed to presign upload URL: {str(e)}")
            raise
        return {"upload_url": upload_url, "object_path": f"{OBJECT_PATH_PREFIX}{key}"}

    def create_download_url(self, key: str) -> Optional[str]:
        """Presigned GET URL for a stored object; None when the key does not exist"""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_OBJECT_CODES:
                return None
            logger.error(f"Failed to look up object {key}: {str(e)}")
            raise
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": key},
            ExpiresIn=settings.download_url_ttl_seconds,
        )


def normalize_object_url(url: str) -> str:
    """Turn an upload URL for our bucket into its /objects/ path; anything else is kept as given"""
    if url.startswith(OBJECT_PATH_PREFIX) or not settings.s3_bucket_name:
        return url
    parsed = urlparse(url)
    host = parsed.netloc
    path = parsed.path.lstrip("/")
    if host.startswith(f"{settings.s3_bucket_name}.s3"):
        return f"{OBJECT_PATH_PREFIX}{path}"
    if host.startswith("s3.") and path.startswith(f"{settings.s3_bucket_name}/"):
        return f"{OBJECT_PATH_PREFIX}{path[len(settings.s3_bucket_name) + 1:]}"
    return url
