from .s3 import S3Backend, S3StorageTransaction, s3_client

__all__ = ["S3Backend", "S3StorageTransaction", "s3_client"]
