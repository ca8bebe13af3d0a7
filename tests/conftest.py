import shutil
import tempfile
from pathlib import Path
from typing import NamedTuple

import pytest

from tests.utils import write_file


class ProjectTree(NamedTuple):
    root: Path
    # Every written file, ignored ones included.
    paths: list[str]
    # Files visible to scanning and expansion (default ignore list applied).
    visible: list[str]
    ignored: list[str]


PROJECT_FILES: dict[str, str] = {
    "README.md": "# Project\n",
    "package.json": '{"name": "project"}\n',
    "src/index.ts": "export {}\n",
    "src/app.tsx": "export const App = () => null\n",
    "src/api/users.ts": "export const users = []\n",
    "src/api/posts.ts": "export const posts = []\n",
    "src/api/README.md": "# API\n",
    "src/components/Button.ts": "export {}\n",
    "src/components/Button.tsx": "export {}\n",
    "src/components/Input.ts": "export {}\n",
    "src/components/Input.tsx": "export {}\n",
    "src/components/icons/close.svg": "<svg/>\n",
    "src/components/icons/open.svg": "<svg></svg>\n",
    "src/utils/format.ts": "export const format = 1\n",
    "src/utils/parse.ts": "export const parse = 1\n",
    "docs/guide.md": "# Guide\n",
    "docs/api.md": "# API docs\n",
    "docs/img/logo.png": "PNG\n",
    "tests/api.test.ts": "test('api', () => {})\n",
    "tests/utils.test.ts": "test('utils', () => {})\n",
    "lib/a.js": "a\n",
    "lib/b.js": "b\n",
    "lib/c.js": "c\n",
    "lib/d.js": "d\n",
    "lib/e.js": "e\n",
    ".github/workflows/ci.yml": "on: push\n",
    "weird/file[1].ts": "bracket\n",
    "weird/#notes.md": "hash\n",
    "weird/!bang.txt": "bang\n",
    "weird/{braces}.ts": "braces\n",
    "weird/comma,name.ts": "comma\n",
    "weird/ spaced.md": "spaced\n",
    " lead.ts": "leading space\n",
    "lead.ts": "no leading space\n",
}

IGNORED_FILES: dict[str, str] = {
    "node_modules/left-pad/index.js": "module.exports = 1\n",
    "src/node_modules/dep/index.ts": "export {}\n",
    "debug.log": "log\n",
    "src/api/.DS_Store": "meta\n",
    "dist/bundle.js": "bundle\n",
}


@pytest.fixture
def presetc_tmp_path():
    """Create a temporary directory with 'presetc' prefix."""
    temp_dir = Path(tempfile.mkdtemp(prefix="presetc.")).resolve()
    try:
        yield temp_dir
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def make_project(presetc_tmp_path):
    """Write the given relative files (all with distinct content) under a fresh project root."""

    def _make(paths) -> Path:
        for index, rel in enumerate(paths):
            write_file(presetc_tmp_path / rel, f"// {index} {rel}\n")
        return presetc_tmp_path

    return _make


@pytest.fixture(scope="session")
def project_tree() -> ProjectTree:
    """
    A session-cached project tree exercising nested directories, mixed extensions,
    dotfiles, glob metacharacters in names, and default-ignored entries.
    """
    root = Path(tempfile.mkdtemp(prefix="presetc_tree.")).resolve()
    for rel, content in {**PROJECT_FILES, **IGNORED_FILES}.items():
        write_file(root / rel, content)
    try:
        yield ProjectTree(
            root=root,
            paths=sorted([*PROJECT_FILES, *IGNORED_FILES]),
            visible=sorted(PROJECT_FILES),
            ignored=sorted(IGNORED_FILES),
        )
    finally:
        shutil.rmtree(root, ignore_errors=True)
