"""
In-memory zip bundler: named text, binary and base64 entries, grouped
under virtual folders, generated into a single archive payload.
"""
from __future__ import annotations

import base64
import io
import zipfile
from collections import OrderedDict
from typing import Dict


class ZipBundler:
    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix
        self._entries: Dict[str, bytes] = OrderedDict()
        self._root = self

    def _name(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def file(self, name: str, data: str | bytes, base64_encoded: bool = False) -> "ZipBundler":
        if base64_encoded:
            payload = base64.b64decode(data)
        elif isinstance(data, str):
            payload = data.encode("utf-8")
        else:
            payload = bytes(data)
        self._root._entries[self._name(name)] = payload
        return self

    def folder(self, name: str) -> "ZipBundler":
        sub = ZipBundler(prefix=self._name(name.rstrip("/") + "/"))
        sub._root = self._root
        return sub

    def generate(self) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, payload in self._root._entries.items():
                zf.writestr(name, payload)
        return buf.getvalue()
