import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from signed_upload.core.config import Settings
from signed_upload.integrations.storage.base import StorageProvider, StorageSigningError


class S3StorageProvider(StorageProvider):
    name = "s3"

    def __init__(self, settings: Settings, client=None) -> None:
        self.settings = settings
        self.client = client or boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint or None,
            region_name=settings.s3_region or None,
            aws_access_key_id=settings.s3_access_key or None,
            aws_secret_access_key=settings.s3_secret_key or None,
            config=Config(signature_version=settings.s3_signature_version),
        )
        self.bucket = settings.s3_bucket

    def sign_upload(self, object_key: str, mime_type: str) -> str:
        params = {
            "Bucket": self.bucket,
            "Key": object_key,
            "ACL": self.settings.s3_acl,
        }
        if mime_type:
            params["ContentType"] = mime_type
        return self._presign("put_object", params, http_method="PUT")

    def sign_download(self, object_key: str) -> str:
        return self._presign("get_object", {"Bucket": self.bucket, "Key": object_key}, http_method="GET")

    def _presign(self, operation: str, params: dict, http_method: str) -> str:
        try:
            return self.client.generate_presigned_url(
                operation,
                Params=params,
                ExpiresIn=self.settings.s3_signature_expires,
                HttpMethod=http_method,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageSigningError(str(exc)) from exc
