import io
import tarfile

import pytest

# glibc ← bash, coreutils (core); bash ← vim (extra)
GLIBC_REPOS = {
    "core": [
        {"name": "glibc"},
        {"name": "bash", "depends": ["glibc", "readline>=8.0"]},
        {"name": "coreutils", "depends": ["glibc", "acl"], "makedepends": ["perl"]},
    ],
    "extra": [
        {"name": "vim", "depends": ["bash"]},
    ],
}

# a ← b ← c
CHAIN_REPOS = {
    "core": [
        {"name": "a"},
        {"name": "b", "depends": ["a"]},
        {"name": "c", "depends": ["b"]},
    ],
}

# Split packages: python-foo and python-foo-docs share the base "foo"
SPLIT_REPOS = {
    "extra": [
        {"name": "libbar"},
        {"name": "python-foo", "base": "foo", "depends": ["libbar"]},
        {"name": "python-foo-docs", "base": "foo", "makedepends": ["libbar"]},
    ],
}


def render_desc(package: dict) -> str:
    """Render a package dict as a pacman ``desc`` file."""
    sections = [("NAME", [package["name"]])]
    sections.append(("VERSION", [package.get("version", "1.0-1")]))
    if package.get("base"):
        sections.append(("BASE", [package["base"]]))
    if package.get("depends"):
        sections.append(("DEPENDS", package["depends"]))
    if package.get("makedepends"):
        sections.append(("MAKEDEPENDS", package["makedepends"]))
    return "".join(
        f"%{key}%\n" + "".join(f"{value}\n" for value in values) + "\n"
        for key, values in sections
    )


def write_sync_db(path, files: dict[str, str], mode: str = "w:gz") -> None:
    """Write a compressed tar with the given ``{member name: text}`` files."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, mode=mode) as archive:
        for name, text in files.items():
            data = text.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))


def write_repos(dbpath, repos: dict[str, list[dict]]) -> None:
    for repo, packages in repos.items():
        files = {
            f"{pkg['name']}-{pkg.get('version', '1.0-1')}/desc": render_desc(pkg)
            for pkg in packages
        }
        write_sync_db(dbpath / "sync" / f"{repo}.db", files)


@pytest.fixture
def make_dbpath(tmp_path):
    """Factory writing ``{repo: [package, ...]}`` as sync databases."""

    def _make(repos: dict[str, list[dict]]):
        dbpath = tmp_path / "pacman"
        write_repos(dbpath, repos)
        return dbpath

    return _make


@pytest.fixture
def glibc_dbpath(make_dbpath):
    return make_dbpath(GLIBC_REPOS)


@pytest.fixture
def chain_dbpath(make_dbpath):
    return make_dbpath(CHAIN_REPOS)


@pytest.fixture
def split_dbpath(make_dbpath):
    return make_dbpath(SPLIT_REPOS)
