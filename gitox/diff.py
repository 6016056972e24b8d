import logging
import subprocess
from collections import defaultdict
from typing import Callable, Iterable, TypeAlias
from typing_extensions import Unpack
from tempfile import NamedTemporaryFile as Temp

from . import types
from . import data
from .data import Repository

logger = logging.getLogger(__name__)

# Called with the two file paths and the display path; returns unified-diff bytes.
Differ: TypeAlias = Callable[[str, str, types.Path], bytes]


def run_diff(path_from: str, path_to: str, path: types.Path = 'blob') -> bytes:
    try:
        with subprocess.Popen(
                ['diff', '--unified', '--show-c-function',
                 '--label', f'a/{path}', path_from,
                 '--label', f'b/{path}', path_to],
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
        ) as proc:
            output, _ = proc.communicate()
    except OSError as e:
        logger.warning('Could not diff %s: %s', path, e)
        return b''

    return output


def compare_trees(*trees: types.TreeMap) -> Iterable[tuple[types.Path, Unpack[tuple[types.OID | None, ...]]]]:
    entries = defaultdict(lambda: [None] * len(trees))
    for i, tree in enumerate(trees):
        for path, oid in tree.items():
            entries[path][i] = oid

    for path, oids in entries.items():
        yield path, *oids


def iter_changed_files(t_from: types.TreeMap, t_to: types.TreeMap) -> Iterable[
        tuple[types.Path, types.Action]]:
    for path, o_from, o_to in compare_trees(t_from, t_to):
        if o_from != o_to:
            action = ('new file' if not o_from else
                      'deleted' if not o_to else
                      'modified')
            yield path, action


def diff_trees(repo: Repository, t_from: types.TreeMap, t_to: types.TreeMap,
               differ: Differ = run_diff) -> bytes:
    output = b''
    for path, o_from, o_to in compare_trees(t_from, t_to):
        if o_from != o_to:
            output += diff_blobs(repo, o_from, o_to, path, differ)
    return output


def diff_blobs(repo: Repository, o_from: types.OID | None, o_to: types.OID | None,
               path: types.Path = 'blob', differ: Differ = run_diff) -> bytes:
    with Temp() as f_from, Temp() as f_to:
        for oid, f in [(o_from, f_from), (o_to, f_to)]:
            if oid:
                f.write(data.get_object(repo, oid))
                f.flush()

        return differ(f_from.name, f_to.name, path)
