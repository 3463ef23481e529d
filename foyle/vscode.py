"""Support for serving VS Code for the web: CORS, workbench options, extensions."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field

# Relative path on which extensions are served.
EXTENSIONS_RPATH = "/extensions"

_log = logging.getLogger(__name__)


class VscodeCors:
    """Allows CORS requests from the vscode-test-web server on a given port.

    That server uses a random host prefix such as
    http://v--<random>.localhost:3000.
    """

    def __init__(self, port: int) -> None:
        self.port = port
        self.match = re.compile(rf"http://v--\w+\.localhost:{port}", re.ASCII)

    def allow_origin(self, origin: str) -> bool:
        return self.match.fullmatch(origin) is not None


@dataclass
class VSCodeUriComponents:
    scheme: str = ""
    authority: str = ""
    path: str = ""
    query: str = ""
    fragment: str = ""

    def to_dict(self) -> dict[str, str]:
        values = {
            "scheme": self.scheme,
            "authority": self.authority,
            "path": self.path,
            "query": self.query,
            "fragment": self.fragment,
        }
        return {k: v for k, v in values.items() if v}


@dataclass
class WorkbenchConstructionOptions:
    """Options passed to the workbench page."""

    additional_builtin_extensions: list[VSCodeUriComponents] = field(default_factory=list)

    def to_json(self) -> str:
        payload: dict[str, object] = {}
        if self.additional_builtin_extensions:
            payload["additionalBuiltinExtensions"] = [
                e.to_dict() for e in self.additional_builtin_extensions
            ]
        return json.dumps(payload, separators=(",", ":"))


def find_extensions_in_dir(ext_dir: str) -> list[str]:
    """Return the paths of subdirectories of ext_dir that contain a package.json."""
    if not ext_dir:
        raise ValueError("extensions dir is empty")
    with os.scandir(ext_dir) as it:
        entries = sorted(it, key=lambda e: e.name)
    found: list[str] = []
    for entry in entries:
        if not entry.is_dir():
            continue
        pkg_file = os.path.join(ext_dir, entry.name, "package.json")
        try:
            os.stat(pkg_file)
        except FileNotFoundError:
            _log.info("dir %s has no package.json; skipping it as an extension", entry.name)
            continue
        ext_path = os.path.join(ext_dir, entry.name)
        _log.info("Found extension %s", ext_path)
        found.append(ext_path)
    return found