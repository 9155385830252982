from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from components.docstorage.contracts import (
    Blob, CompressionAlgorithm, RetryPolicy, UnknownEncoding, parse_content_encoding
)


def test_compression_labels_round_trip():
    for alg in CompressionAlgorithm:
        assert CompressionAlgorithm.parse(str(alg)) is alg


def test_compression_parse_rejects_unknown():
    with pytest.raises(ValueError):
        CompressionAlgorithm.parse("lz4")


def test_content_encoding_keeps_unknown_labels():
    assert parse_content_encoding(None) is None
    assert parse_content_encoding("") is None
    assert parse_content_encoding("zstd") is CompressionAlgorithm.ZSTD
    assert parse_content_encoding("GZIP") is CompressionAlgorithm.GZIP
    unknown = parse_content_encoding("br")
    assert unknown == UnknownEncoding(label="br")
    assert str(unknown) == "br"


def test_blob_is_immutable():
    blob = Blob(path="a.txt", mime="text/plain", date_updated=datetime.now(timezone.utc), content=b"x")
    with pytest.raises(ValidationError):
        blob.content = b"y"


def test_blob_path_must_not_be_empty():
    with pytest.raises(ValidationError):
        Blob(path="", mime="text/plain", date_updated=datetime.now(timezone.utc), content=b"")


def test_retry_policy_backoff_grows():
    policy = RetryPolicy(attempts=4, backoff_seconds=0.5, backoff_factor=2)
    assert [policy.delay_after(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]
    assert RetryPolicy(backoff_seconds=0).delay_after(2) == 0


def test_retry_policy_requires_one_attempt():
    with pytest.raises(ValidationError):
        RetryPolicy(attempts=0)


def test_blob_rejects_naive_timestamps():
    with pytest.raises(ValidationError):
        Blob(path="a.txt", mime="text/plain", date_updated=datetime(2020, 1, 1), content=b"")


def test_blob_normalizes_timestamps_to_utc():
    cest = timezone(timedelta(hours=2))
    blob = Blob(path="a.txt", mime="text/plain", date_updated=datetime(2020, 1, 1, 2, 0, tzinfo=cest), content=b"")
    assert blob.date_updated == datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert blob.date_updated.tzinfo is timezone.utc
