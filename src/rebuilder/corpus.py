from __future__ import annotations

import logging
import lzma
import re
import tarfile
import zlib
from collections import defaultdict
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Sync repositories in the order pacman consults them.
DEFAULT_REPOS = ("core", "extra", "community", "multilib")

# Files inside a package entry that carry metadata sections. Legacy
# databases split dependency sections out into a separate "depends" file.
METADATA_FILES = {"desc", "depends"}

_DEP_NAME_SPLIT = re.compile(r"[<>=:]")


class CorpusUnavailable(RuntimeError):
    """A configured sync database could not be enumerated."""

    def __init__(self, repo: str, reason: str) -> None:
        super().__init__(f"Unable to get packages from sync db {repo}: {reason}")
        self.repo = repo


class PackageNotFound(LookupError):
    """A requested package is not present in any configured repository."""

    def __init__(self, name: str) -> None:
        super().__init__(f"package '{name}' not found in any sync db")
        self.name = name


@dataclass
class SyncPackage:
    name: str
    base: str | None = None
    depends: list[str] = field(default_factory=list)
    makedepends: list[str] = field(default_factory=list)

    @property
    def identity(self) -> str:
        """Name recorded for this package when it shows up as a dependent."""
        return self.base or self.name

    @property
    def dependencies(self) -> list[str]:
        return self.depends + self.makedepends


def dependency_name(dep: str) -> str:
    """Strip a version constraint or description from a dependency string.

    ``glibc>=2.38`` -> ``glibc``, ``python: for the bindings`` -> ``python``.
    """
    return _DEP_NAME_SPLIT.split(dep, maxsplit=1)[0].strip()


def parse_desc(text: str) -> dict[str, list[str]]:
    """Parse a pacman ``desc`` file into ``{SECTION: [values...]}``."""
    sections: dict[str, list[str]] = {}
    current: str | None = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            current = None
            continue
        if len(line) > 2 and line.startswith("%") and line.endswith("%"):
            current = line[1:-1]
            sections.setdefault(current, [])
        elif current is not None:
            sections[current].append(line)
    return sections


def _package_from_sections(
    entry: str, sections: dict[str, list[str]]
) -> SyncPackage | None:
    names = sections.get("NAME")
    if not names:
        logger.warning("Entry %r has no %%NAME%% section, skipping", entry)
        return None
    base = sections.get("BASE")

    def _names(key: str) -> list[str]:
        result = []
        for dep in sections.get(key, []):
            name = dependency_name(dep)
            if name:
                result.append(name)
        return result

    return SyncPackage(
        name=names[0],
        base=base[0] if base else None,
        depends=_names("DEPENDS"),
        makedepends=_names("MAKEDEPENDS"),
    )


@dataclass
class SyncDatabase:
    """One sync repository, backed by ``<dbpath>/sync/<name>.db``.

    The archive is read on first access and cached for the lifetime of the
    object.
    """

    name: str
    path: Path
    _packages: dict[str, SyncPackage] | None = field(
        default=None, init=False, repr=False
    )

    def _load(self) -> dict[str, SyncPackage]:
        entries: dict[str, dict[str, list[str]]] = defaultdict(dict)
        try:
            with tarfile.open(self.path, mode="r:*") as archive:
                for member in archive:
                    if not member.isfile():
                        continue
                    entry, _, filename = member.name.rpartition("/")
                    if not entry or filename not in METADATA_FILES:
                        continue
                    handle = archive.extractfile(member)
                    if handle is None:
                        continue
                    text = handle.read().decode("utf-8", errors="replace")
                    entries[entry].update(parse_desc(text))
                # tarfile stops without error at a damaged header; draining the
                # stream makes the decompressor verify its checksum.
                archive.fileobj.read()
        except FileNotFoundError as exc:
            raise CorpusUnavailable(self.name, f"{self.path} does not exist") from exc
        except (
            tarfile.TarError,
            OSError,
            EOFError,
            zlib.error,
            lzma.LZMAError,
        ) as exc:
            raise CorpusUnavailable(self.name, f"cannot read {self.path}: {exc}") from exc

        packages: dict[str, SyncPackage] = {}
        for entry, sections in entries.items():
            pkg = _package_from_sections(entry, sections)
            if pkg is None:
                continue
            if pkg.name in packages:
                logger.warning(
                    "Duplicate package %r in sync db %s", pkg.name, self.name
                )
            packages[pkg.name] = pkg

        logger.debug(
            "Loaded %d packages from sync db %s (%s)",
            len(packages),
            self.name,
            self.path,
        )
        return packages

    def _cache(self) -> dict[str, SyncPackage]:
        if self._packages is None:
            self._packages = self._load()
        return self._packages

    def packages(self) -> list[SyncPackage]:
        """All packages in this repository, sorted by name."""
        cache = self._cache()
        return [cache[name] for name in sorted(cache)]

    def get(self, name: str) -> SyncPackage | None:
        return self._cache().get(name)


@dataclass
class Corpus:
    databases: list[SyncDatabase] = field(default_factory=list)

    def iter_packages(self) -> Iterator[SyncPackage]:
        """Yield every package of every repository, repository order first."""
        for db in self.databases:
            yield from db.packages()

    def find_package(self, name: str) -> SyncPackage:
        """Return the package from the first repository that has it.

        Raises:
            PackageNotFound: If no configured repository holds ``name``.
        """
        for db in self.databases:
            pkg = db.get(name)
            if pkg is not None:
                logger.debug("Found %s in sync db %s", name, db.name)
                return pkg
        raise PackageNotFound(name)

    def validate(self, pkgnames: Iterable[str]) -> None:
        """Check that every name resolves, failing on the first one that doesn't."""
        for name in pkgnames:
            self.find_package(name)


def open_corpus(dbpath: Path, repos: Sequence[str] = DEFAULT_REPOS) -> Corpus:
    """Register the sync databases ``repos`` found under ``dbpath``.

    Nothing is read until packages are requested.
    """
    dbpath = Path(dbpath)
    databases = [SyncDatabase(repo, dbpath / "sync" / f"{repo}.db") for repo in repos]
    logger.debug("Registered %d sync dbs under %s", len(databases), dbpath)
    return Corpus(databases=databases)
