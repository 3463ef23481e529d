"""Prepare a directory holding the static assets for VS Code for the web."""

from __future__ import annotations

import argparse
import json
import logging
import os
import shutil
import sys
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

_log = logging.getLogger(__name__)

# Directories and files that should not be copied. The "out" directory is kept
# because it holds assets for extensions such as markdown-language-features.
EXCLUDED_FILES = ("src", "node_modules", "yarn.lock")

# Extensions left out because they aren't useful right now.
EXCLUDED_EXTENSIONS = frozenset(
    {
        "bat", "clojure", "coffeescript", "cpp", "csharp", "fsharp",
        "groovy", "handlebars", "hlsl", "ini", "java", "julia", "lua", "npm",
        "objective-c", "perl", "php", "powershell", "pug", "r", "razor", "ruby",
        "rust", "scss", "shaderlab", "search-result", "sql", "swift", "xml", "vb",
    }
)

# VS Code build directories copied verbatim.
_ASSET_DIRS = ("out-vscode-reh-web-min", "resources")


class ExtensionType(str, Enum):
    """Kind of a VS Code extension, derived from its package.json."""

    BROWSER = "browser"
    THEME = "theme"
    LANGUAGE = "language"
    NOTEBOOK_RENDERER = "notebookRenderer"
    UNKNOWN = "unknown"


_ALLOWED_TYPES = frozenset(
    {
        ExtensionType.BROWSER,
        ExtensionType.LANGUAGE,
        ExtensionType.NOTEBOOK_RENDERER,
        ExtensionType.THEME,
    }
)


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )


def get_extension_type(pkg: Mapping[str, Any]) -> ExtensionType:
    """Return the type of extension described by a parsed package.json."""
    if "browser" in pkg:
        return ExtensionType.BROWSER
    contributes = pkg.get("contributes")
    if not isinstance(contributes, Mapping):
        return ExtensionType.UNKNOWN
    if "themes" in contributes:
        return ExtensionType.THEME
    if "languages" in contributes:
        return ExtensionType.LANGUAGE
    if "notebookRenderer" in contributes:
        return ExtensionType.NOTEBOOK_RENDERER
    return ExtensionType.UNKNOWN


def maybe_create_nls(target_dir: str) -> None:
    """Create an empty package.nls.json in target_dir if it is missing.

    Without it the browser gets 404s when loading the extension.
    """
    nls_file = os.path.join(target_dir, "package.nls.json")
    try:
        os.stat(nls_file)
        return
    except FileNotFoundError:
        pass
    except OSError:
        return
    _log.info("Creating nls.json file %s", nls_file)
    try:
        with open(nls_file, "w", encoding="utf-8") as fh:
            fh.write("{}")
    except OSError as exc:
        _log.error("Failed to create %s: %s", nls_file, exc)


def _read_package(pkg_file: str) -> dict[str, Any]:
    with open(pkg_file, encoding="utf-8") as fh:
        pkg = json.load(fh)
    if not isinstance(pkg, dict):
        raise ValueError(f"{pkg_file} does not hold a JSON object")
    return pkg


def _copy_tree(src: str, dest: str) -> None:
    shutil.copytree(src, dest, symlinks=True, dirs_exist_ok=True)


def _visit_extension_dir(path: str, ext_out: str) -> None:
    name = os.path.basename(os.path.normpath(path))
    if name in EXCLUDED_EXTENSIONS:
        _log.info("Skipping extension %s", name)
        return

    pkg_file = os.path.join(path, "package.json")
    recurse = True
    if os.path.exists(pkg_file):
        pkg = _read_package(pkg_file)
        ext_type = get_extension_type(pkg)
        if ext_type not in _ALLOWED_TYPES:
            _log.info("Skipping extension %s of unallowed type %s", name, ext_type.value)
        else:
            target_dir = os.path.join(ext_out, name)
            if os.path.exists(target_dir):
                _log.info("Removing extension dir %s", target_dir)
                shutil.rmtree(target_dir)
            _log.info("Copying extension %s from %s to %s", name, path, target_dir)
            _copy_tree(path, target_dir)
            maybe_create_nls(target_dir)
            recurse = False

    if not recurse:
        return
    with os.scandir(path) as it:
        children = sorted(
            (entry.path for entry in it if entry.is_dir(follow_symlinks=False)),
        )
    for child in children:
        _visit_extension_dir(child, ext_out)


def copy_extensions(vscode: str, out: str) -> None:
    """Copy the usable extensions under vscode/extensions into out/extensions."""
    ext_dir = os.path.join(vscode, "extensions")
    ext_out = os.path.join(out, "extensions")
    try:
        os.stat(ext_dir)
    except OSError as exc:
        raise FileNotFoundError(f"Failed to stat extensions directory {ext_dir}") from exc
    _visit_extension_dir(ext_dir, ext_out)


def run(vscode: str, out: str) -> None:
    """Build the asset directory out from the VS Code build in vscode."""
    if os.path.exists(out):
        _log.info("Deleting output directory %s", out)
        try:
            shutil.rmtree(out)
        except OSError as exc:
            raise OSError(f"Failed to remove output directory {out}") from exc

    for asset in _ASSET_DIRS:
        src = os.path.join(vscode, asset)
        dest = os.path.join(out, asset)
        _log.info("Copying directory %s to %s", src, dest)
        _copy_tree(src, dest)

    copy_extensions(vscode, out)


def main(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point; returns the process exit status."""
    parser = argparse.ArgumentParser(description="Prepare VS Code web assets.")
    parser.add_argument("-vscode", "--vscode", default="", help="path to the vscode directory")
    parser.add_argument("-out", "--out", default="", help="path to store the assets in")
    args = parser.parse_args(argv)

    _setup_logging()
    try:
        run(args.vscode, args.out)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())