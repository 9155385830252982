from __future__ import annotations

import io
import threading
from datetime import datetime, timezone
from email.utils import format_datetime

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody

from components.docstorage import RetryPolicy, S3Backend


def _client_error(code: str, status: int, op: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        op,
    )


class FakeS3Client:
    """In-process stand-in for a boto3 S3 client (get_object / put_object only).

    ``fail_puts[key] = n`` makes the next n puts of key fail; a negative n
    makes every put of key fail. ``omit`` drops fields from get responses.
    """

    def __init__(self):
        self.objects = {}
        self.put_calls = []
        self.bodies = []
        self.fail_puts = {}
        self.omit = set()
        self.declared_length = {}
        self.get_error = None
        self.now = lambda: datetime.now(timezone.utc).replace(microsecond=0)
        self._lock = threading.Lock()

    def add(self, bucket, key, content, mime="text/plain", encoding=None, last_modified=None):
        self.objects[(bucket, key)] = {
            "content": bytes(content),
            "mime": mime,
            "encoding": encoding,
            "last_modified": last_modified or self.now(),
        }

    def put_object(self, Bucket, Key, Body, ContentType, ContentEncoding=None):
        with self._lock:
            self.put_calls.append(Key)
            remaining = self.fail_puts.get(Key, 0)
            if remaining:
                if remaining > 0:
                    self.fail_puts[Key] = remaining - 1
                raise _client_error("SlowDown", 503, "PutObject")
            self.add(Bucket, Key, Body, ContentType, ContentEncoding)
        return {"ETag": '"etag"'}

    def get_object(self, Bucket, Key):
        if self.get_error is not None:
            raise self.get_error
        obj = self.objects.get((Bucket, Key))
        if obj is None:
            raise _client_error("NoSuchKey", 404, "GetObject")

        content = obj["content"]
        body = StreamingBody(io.BytesIO(content), len(content))
        self.bodies.append(body)
        length = self.declared_length.get(Key, len(content))
        headers = {
            "content-length": str(length),
            "content-type": obj["mime"],
            "last-modified": format_datetime(obj["last_modified"], usegmt=True),
        }
        res = {
            "Body": body,
            "ContentLength": length,
            "ContentType": obj["mime"],
            "LastModified": obj["last_modified"],
            "ResponseMetadata": {"HTTPStatusCode": 200, "HTTPHeaders": headers},
        }
        if obj["encoding"]:
            res["ContentEncoding"] = obj["encoding"]
            headers["content-encoding"] = obj["encoding"]

        for field in self.omit:
            res.pop(field, None)
            if field == "LastModified":
                headers.pop("last-modified", None)
            if field == "ContentType":
                headers.pop("content-type", None)
        return res


BUCKET = "docs-test"


@pytest.fixture
def fake_s3():
    return FakeS3Client()


@pytest.fixture
def backend(fake_s3):
    s3 = S3Backend(fake_s3, BUCKET, retry=RetryPolicy(attempts=3, backoff_seconds=0), max_workers=8)
    yield s3
    s3.close()
