"""S3-compatible object store for rehosted asset files."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

import boto3
import requests
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import StorageConfig
from ..exceptions import AssetError, ConfigError
from ..migrators.asset_migrator import extension_for

logger = logging.getLogger(__name__)


def get_s3_client(cfg: StorageConfig):
    """Create an S3 client for the configured endpoint (path-style addressing)."""
    if not cfg.access_key_id or not cfg.secret_access_key:
        raise ConfigError(
            "WEBSITE_ASSETS_BUCKET_ACCESS_KEY_ID and WEBSITE_ASSETS_BUCKET_SECRET_ACCESS_KEY must be set"
        )
    return boto3.client(
        "s3",
        endpoint_url=cfg.endpoint_url,
        region_name=cfg.region,
        aws_access_key_id=cfg.access_key_id,
        aws_secret_access_key=cfg.secret_access_key,
        config=BotoConfig(s3={"addressing_style": "path"}),
    )


def build_object_key(prefix: str, content_type: str) -> str:
    """Build a unique key ``<prefix>/<uuid4><ext>``."""
    name = f"{uuid.uuid4()}{extension_for(content_type)}"
    return f"{prefix.strip('/')}/{name}" if prefix else name


class S3ObjectStore:
    def __init__(
        self,
        cfg: StorageConfig,
        client: Optional[Any] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 60.0,
    ) -> None:
        self.cfg = cfg
        self.client = client or get_s3_client(cfg)
        self.session = session or requests.Session()
        self.timeout = timeout

    def upload(self, data: bytes, content_type: str) -> str:
        """Store ``data`` under a fresh key and return its public URL."""
        key = build_object_key(self.cfg.key_prefix, content_type)
        try:
            self.client.put_object(
                Bucket=self.cfg.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise AssetError(f"Error uploading file to s3://{self.cfg.bucket}/{key}: {e}") from e
        logger.info("Uploaded %d bytes to s3://%s/%s", len(data), self.cfg.bucket, key)
        return f"{self.cfg.public_url_root}/{key}"

    def download(self, url: str) -> bytes:
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise AssetError(f"Error downloading file from {url}: {e}") from e
        return resp.content
