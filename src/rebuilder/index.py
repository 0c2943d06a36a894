from __future__ import annotations

import logging
from collections import defaultdict

from rebuilder.corpus import Corpus

logger = logging.getLogger(__name__)


def build_reverse_index(corpus: Corpus) -> dict[str, list[str]]:
    """Scan every repository and map each package name to its dependents.

    Runtime and build-time dependencies are merged. A dependent is recorded
    under its base name when it has one, so split packages collapse onto the
    source package that has to be rebuilt. Repeated declarations are kept
    as repeated entries.

    Args:
        corpus: The sync databases to scan, in lookup order.

    Returns:
        Mapping of dependency name → packages declaring it, in scan order.

    Raises:
        CorpusUnavailable: If any repository cannot be enumerated. The index
            is never returned partially built.
    """
    reverse_deps: dict[str, list[str]] = defaultdict(list)
    scanned = 0

    for pkg in corpus.iter_packages():
        scanned += 1
        for dep in pkg.dependencies:
            reverse_deps[dep].append(pkg.identity)

    logger.debug(
        "Indexed %d packages, %d distinct dependencies", scanned, len(reverse_deps)
    )
    return dict(reverse_deps)
