"""Tests for static object stores"""

import hashlib
import io
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from edgehost.errors import ConfigError
from edgehost.router.object_store import (
    EmptyObjectStore,
    FilesystemObjectStore,
    S3ObjectStore,
    StoredObject,
    open_object_store,
    quote_etag,
)


class FakeS3Client:
    class exceptions:
        class NoSuchKey(Exception):
            pass

    def __init__(self, objects: dict):
        self.objects = objects
        self.requested = []

    def get_object(self, Bucket, Key):
        self.requested.append((Bucket, Key))
        if Key not in self.objects:
            raise self.exceptions.NoSuchKey(Key)
        body, extra = self.objects[Key]
        return {"Body": io.BytesIO(body), **extra}


class FilesystemObjectStoreTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        (self.root / "robots.txt").write_bytes(b"User-agent: *\n")
        (self.root / "nested").mkdir()
        (self.root / "nested" / "inner.txt").write_text("hidden")
        self.store = FilesystemObjectStore(self.root)

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def test_hit(self):
        obj = await self.store.get("robots.txt")
        self.assertIsNotNone(obj)
        self.assertEqual(obj.body, b"User-agent: *\n")
        self.assertEqual(obj.content_type, "text/plain")
        self.assertEqual(obj.etag, f'"{hashlib.md5(obj.body).hexdigest()}"')

    async def test_miss(self):
        self.assertIsNone(await self.store.get("favicon.ico"))

    async def test_keys_cannot_escape_root(self):
        for key in ("", ".", "..", "nested/inner.txt", "../robots.txt", "nested"):
            with self.subTest(key=key):
                self.assertIsNone(await self.store.get(key))

    async def test_unknown_extension_is_octet_stream(self):
        (self.root / "blob").write_bytes(b"\x00\x01")
        obj = await self.store.get("blob")
        self.assertEqual(obj.content_type, "application/octet-stream")


class S3ObjectStoreTests(unittest.IsolatedAsyncioTestCase):
    async def test_hit_copies_metadata(self):
        client = FakeS3Client(
            {
                "logo.svg": (
                    b"<svg/>",
                    {"ContentType": "image/svg+xml", "ETag": '"abc123"', "CacheControl": "max-age=60"},
                )
            }
        )
        store = S3ObjectStore("site-root", client=client)
        obj = await store.get("logo.svg")
        self.assertEqual(client.requested, [("site-root", "logo.svg")])
        self.assertEqual(obj.body, b"<svg/>")
        headers = obj.http_headers()
        self.assertEqual(headers["content-type"], "image/svg+xml")
        self.assertEqual(headers["etag"], '"abc123"')
        self.assertEqual(headers["cache-control"], "max-age=60")

    async def test_no_such_key_is_a_miss(self):
        store = S3ObjectStore("site-root", client=FakeS3Client({}))
        self.assertIsNone(await store.get("missing.png"))

    async def test_empty_key_skips_lookup(self):
        client = FakeS3Client({})
        store = S3ObjectStore("site-root", client=client)
        self.assertIsNone(await store.get(""))
        self.assertEqual(client.requested, [])

    async def test_other_errors_propagate(self):
        class BrokenClient(FakeS3Client):
            def get_object(self, Bucket, Key):
                raise RuntimeError("access denied")

        store = S3ObjectStore("site-root", client=BrokenClient({}))
        with self.assertRaises(RuntimeError):
            await store.get("logo.svg")


class OpenObjectStoreTests(unittest.IsolatedAsyncioTestCase):
    async def test_empty_location(self):
        store = open_object_store("")
        self.assertIsInstance(store, EmptyObjectStore)
        self.assertIsNone(await store.get("anything"))

    def test_s3_location(self):
        with patch("edgehost.router.object_store.boto3.client") as client_factory:
            store = open_object_store("s3://site-root", endpoint_url="https://r2.example")
        self.assertIsInstance(store, S3ObjectStore)
        self.assertEqual(store.bucket, "site-root")
        client_factory.assert_called_once_with("s3", endpoint_url="https://r2.example")

    def test_s3_location_requires_bucket(self):
        with self.assertRaises(ConfigError):
            open_object_store("s3://")

    def test_filesystem_locations(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertIsInstance(open_object_store(tmp), FilesystemObjectStore)
            self.assertIsInstance(open_object_store(f"file://{tmp}"), FilesystemObjectStore)

    def test_unknown_scheme(self):
        with self.assertRaises(ConfigError):
            open_object_store("gs://bucket")


class StoredObjectTests(unittest.TestCase):
    def test_headers_without_etag(self):
        obj = StoredObject(key="a", body=b"", content_type="text/css")
        self.assertEqual(obj.http_headers(), {"content-type": "text/css"})

    def test_quote_etag(self):
        self.assertEqual(quote_etag("abc"), '"abc"')
        self.assertEqual(quote_etag('"abc"'), '"abc"')
        self.assertEqual(quote_etag('W/"abc"'), 'W/"abc"')


if __name__ == "__main__":
    unittest.main()
