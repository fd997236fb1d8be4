"""
Wireframe UV result file I/O (.wfuv)

The result format is a zip container with a JSON manifest and the generated
coordinates as a `.npy` array. The manifest alone is enough to inspect a run
(channel, component count, per-region summary) without loading the array.
"""

from __future__ import annotations

from datetime import datetime, timezone
import io
import json
from pathlib import Path
from typing import Any
import zipfile

import numpy as np


UV_FILE_FORMAT = "wirelabel_uv"
UV_FILE_VERSION = 1
MANIFEST_NAME = "manifest.json"
UV_ARRAY_NAME = "uv.npy"


class UVFileFormatError(RuntimeError):
    pass


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def save_uv_file(
    path: str | Path,
    uvs: np.ndarray,
    *,
    channel: int,
    summary: dict[str, Any] | None = None,
    meta: dict[str, Any] | None = None,
) -> str:
    """
    Save generated wireframe coordinates.

    Args:
        path: destination path (usually ends with .wfuv)
        uvs: (N, 2|3|4) coordinates
        channel: UV channel the coordinates belong to
        summary: labeling summary (JSON-serializable)
        meta: optional metadata (e.g., source mesh path)
    """
    arr = np.asarray(uvs, dtype=np.float32)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3, 4):
        raise ValueError(f"uvs must be (N, 2|3|4), got {arr.shape}")

    out_path = Path(path)
    doc: dict[str, Any] = {
        "format": UV_FILE_FORMAT,
        "version": UV_FILE_VERSION,
        "saved_at": _utc_now_iso(),
        "meta": dict(meta or {}),
        "channel": int(channel),
        "components": int(arr.shape[1]),
        "n_vertices": int(arr.shape[0]),
        "summary": dict(summary or {}),
    }

    buf = io.BytesIO()
    np.save(buf, arr, allow_pickle=False)

    data = json.dumps(doc, ensure_ascii=False, indent=2)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(MANIFEST_NAME, data.encode("utf-8"))
        zf.writestr(UV_ARRAY_NAME, buf.getvalue())
    return str(out_path)


def load_uv_file(path: str | Path) -> tuple[dict[str, Any], np.ndarray]:
    """
    Load a result file.

    Returns:
        (manifest, uvs) where manifest includes keys format/version/meta/channel/components/summary
    """
    in_path = Path(path)
    if not in_path.exists():
        raise FileNotFoundError(str(in_path))
    if not zipfile.is_zipfile(in_path):
        raise UVFileFormatError("Not a UV result file (expected a zip container)")

    with zipfile.ZipFile(in_path, "r") as zf:
        try:
            raw_bytes = zf.read(MANIFEST_NAME)
        except KeyError as e:
            raise UVFileFormatError(f"Missing {MANIFEST_NAME} in UV result file") from e
        try:
            array_bytes = zf.read(UV_ARRAY_NAME)
        except KeyError as e:
            raise UVFileFormatError(f"Missing {UV_ARRAY_NAME} in UV result file") from e

    try:
        doc = json.loads(raw_bytes.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise UVFileFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise UVFileFormatError("Invalid manifest (expected JSON object)")

    fmt = str(doc.get("format", "")).strip()
    ver = doc.get("version", None)
    if fmt != UV_FILE_FORMAT:
        raise UVFileFormatError(f"Unsupported UV file format: {fmt!r}")
    if ver != UV_FILE_VERSION:
        raise UVFileFormatError(f"Unsupported UV file version: {ver!r}")

    try:
        uvs = np.load(io.BytesIO(array_bytes), allow_pickle=False)
    except ValueError as e:
        raise UVFileFormatError(f"Invalid {UV_ARRAY_NAME}: {e}") from e

    components = doc.get("components", None)
    if uvs.ndim != 2 or uvs.shape[1] != components:
        raise UVFileFormatError(
            f"UV array shape {uvs.shape} does not match manifest components {components!r}"
        )

    meta = doc.get("meta", {})
    if meta is None:
        doc["meta"] = {}
    elif not isinstance(meta, dict):
        doc["meta"] = {"_raw": meta}
    if not isinstance(doc.get("summary"), dict):
        doc["summary"] = {}

    return doc, uvs
