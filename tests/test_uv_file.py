import json
import tempfile
import unittest
import zipfile
from pathlib import Path

import numpy as np

from wirelabel.core.output_paths import UV_RESULT_SUFFIX, uv_result_path
from wirelabel.core.uv_file import (
    MANIFEST_NAME,
    UV_ARRAY_NAME,
    UV_FILE_FORMAT,
    UV_FILE_VERSION,
    UVFileFormatError,
    load_uv_file,
    save_uv_file,
)


class TestUVFile(unittest.TestCase):
    def test_roundtrip_zip_manifest(self):
        uvs = np.array([[1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 0.0]])
        summary = {"n_regions": 1, "region_kinds": {"cycle": 1}}
        meta = {"source": "C:/tmp/crate.obj"}

        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "crate.wfuv"
            save_uv_file(path, uvs, channel=3, summary=summary, meta=meta)
            doc, loaded = load_uv_file(path)

        self.assertEqual(doc.get("format"), UV_FILE_FORMAT)
        self.assertEqual(doc.get("version"), UV_FILE_VERSION)
        self.assertEqual(doc.get("channel"), 3)
        self.assertEqual(doc.get("components"), 4)
        self.assertEqual(doc.get("n_vertices"), 2)
        self.assertEqual(doc.get("summary"), summary)
        self.assertEqual(doc.get("meta"), meta)
        self.assertEqual(loaded.dtype, np.float32)
        np.testing.assert_allclose(loaded, uvs)

    def test_rejects_bad_shape(self):
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ValueError):
                save_uv_file(Path(td) / "bad.wfuv", np.zeros((3, 5)), channel=0)

    def test_not_a_zip(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "plain.wfuv"
            path.write_text("{}", encoding="utf-8")
            with self.assertRaises(UVFileFormatError):
                load_uv_file(path)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_uv_file(Path(tempfile.gettempdir()) / "does_not_exist_wirelabel.wfuv")

    def test_missing_array(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "partial.wfuv"
            with zipfile.ZipFile(path, "w") as zf:
                zf.writestr(MANIFEST_NAME, json.dumps({"format": UV_FILE_FORMAT, "version": UV_FILE_VERSION}))
            with self.assertRaises(UVFileFormatError):
                load_uv_file(path)

    def test_wrong_version(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "sample.wfuv"
            save_uv_file(path, np.zeros((2, 2)), channel=0)
            with zipfile.ZipFile(path, "r") as zf:
                doc = json.loads(zf.read(MANIFEST_NAME).decode("utf-8"))
                array_bytes = zf.read(UV_ARRAY_NAME)
            doc["version"] = UV_FILE_VERSION + 1
            with zipfile.ZipFile(path, "w") as zf:
                zf.writestr(MANIFEST_NAME, json.dumps(doc))
                zf.writestr(UV_ARRAY_NAME, array_bytes)
            with self.assertRaises(UVFileFormatError):
                load_uv_file(path)


def test_uv_result_path():
    assert uv_result_path("models/crate.obj") == Path("models/crate" + UV_RESULT_SUFFIX)
    assert uv_result_path("models/crate.obj", "out/result.wfuv") == Path("out/result.wfuv")
    assert uv_result_path(Path("a.b.glb")) == Path("a.b.wfuv")
