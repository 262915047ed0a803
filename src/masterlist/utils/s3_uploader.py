# src/masterlist/utils/s3_uploader.py

import logging
import threading
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Thread-local storage for S3 client instances
thread_local = threading.local()

PLACEHOLDER_VALUES = ['', 'YOUR_ACCESS_KEY', 'YOUR_SECRET_KEY', 'your-bucket-name']


class S3ExportUploader:
    """
    Uploads exported snapshots to an S3-compatible bucket and lists what
    is already there. Objects live under <s3.prefix>/<profile name>/.
    """

    def __init__(self, config):
        """
        Initialize S3 uploader with configuration.

        Args:
            config: ConfigManager instance with S3 settings
        """
        self.config = config
        self._validate_config()

        self.bucket = config.get('s3.bucket')
        prefix = str(config.get('s3.prefix', 'masterlist/exports')).strip('/')
        self.remote_prefix = f"{prefix}/{config.get('profile.name', 'default')}"

        self._test_connection()

        logger.info(f"S3 uploader initialized. Bucket: {self.bucket}, Prefix: {self.remote_prefix}")

    def _validate_config(self):
        """Validate S3 configuration is complete."""
        required_keys = ['s3.bucket', 's3.endpoint', 's3.access_key', 's3.secret_key', 's3.region']
        missing_config = []

        for key in required_keys:
            value = self.config.get(key)
            if not value or str(value).strip() in PLACEHOLDER_VALUES:
                missing_config.append(key)

        if missing_config:
            raise ValueError(f"S3 configuration incomplete. Missing or invalid: {', '.join(missing_config)}")

    def _test_connection(self):
        """Test S3 connection."""
        try:
            import boto3  # noqa: F401
        except ImportError:
            raise ImportError("boto3 is required for S3 exports. Install with: pip install boto3")

        s3_client = self._get_s3_client()
        try:
            # head_bucket needs fewer permissions than listing all buckets
            s3_client.head_bucket(Bucket=self.bucket)
            logger.info("S3 connection test successful")
        except Exception:
            try:
                s3_client.list_objects_v2(Bucket=self.bucket, MaxKeys=1)
                logger.info("S3 connection test successful (via list_objects)")
            except Exception as e2:
                raise ConnectionError(f"S3 connection test failed: {e2}")

    def _get_s3_client(self):
        """Get or create an S3 client instance for the current thread."""
        if not hasattr(thread_local, 's3_client'):
            import boto3

            endpoint = str(self.config.get('s3.endpoint'))
            endpoint_url = endpoint if endpoint.startswith("http") else f"https://{endpoint}"

            thread_local.s3_client = boto3.client(
                's3',
                endpoint_url=endpoint_url,
                aws_access_key_id=self.config.get('s3.access_key'),
                aws_secret_access_key=self.config.get('s3.secret_key'),
                region_name=self.config.get('s3.region')
            )

        return thread_local.s3_client

    def key_for(self, filename: str) -> str:
        return f"{self.remote_prefix}/{filename}"

    def upload_bytes(self, data: bytes, filename: str) -> bool:
        """
        Upload one exported file.

        Returns:
            bool: True if upload succeeded, False otherwise
        """
        s3_key = self.key_for(filename)
        try:
            self._get_s3_client().put_object(
                Bucket=self.bucket,
                Key=s3_key,
                Body=data,
                ContentType="application/json"
            )
            logger.debug(f"Uploaded {filename} to s3://{self.bucket}/{s3_key}")
            return True
        except Exception as e:
            logger.error(f"Failed to upload {filename} to S3: {e}")
            return False

    def list_exports(self, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Newest exports first. Export names embed a zero-padded version and a
        timestamp, so a descending name sort is also a version sort.
        """
        files = []
        paginator = self._get_s3_client().get_paginator('list_objects_v2')
        for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{self.remote_prefix}/"):
            for obj in page.get('Contents', []):
                if obj['Key'].endswith('/'):
                    continue
                files.append({
                    'key': obj['Key'],
                    'filename': obj['Key'].split('/')[-1],
                    'size': obj['Size'],
                    'last_modified': obj['LastModified'],
                })
        files.sort(key=lambda x: x['filename'], reverse=True)
        return files[:limit]


def format_file_size(size_bytes: float) -> str:
    """Format file size in human readable format"""
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes /= 1024.0
        i += 1

    return f"{size_bytes:.1f} {size_names[i]}"


def create_s3_uploader(config) -> Optional[S3ExportUploader]:
    """
    Factory function to create S3 uploader with proper error handling.

    Returns:
        S3ExportUploader instance or None if configuration/connection fails
    """
    try:
        return S3ExportUploader(config)
    except (ValueError, ImportError, ConnectionError) as e:
        logger.error(f"Failed to initialize S3 uploader: {e}")
        return None
