import logging
import os
import string
from collections import deque
from typing import Iterable

from gitox import data
from gitox import types
from gitox.data import Repository
from gitox.errors import MalformedObject, UnknownName
from gitox.types import RefValue

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = 'master'


def init(repo: Repository) -> None:
    data.init(repo)
    data.update_ref(repo, 'HEAD', RefValue(symbolic=True, value=f'refs/heads/{DEFAULT_BRANCH}'))


def get_branch_name(repo: Repository) -> str | None:
    HEAD = data.get_ref(repo, 'HEAD', deref=False)
    if not HEAD.symbolic or not HEAD.value.startswith('refs/heads/'):
        return None
    return HEAD.value.removeprefix('refs/heads/')


def iter_branch_names(repo: Repository) -> Iterable[str]:
    for refname, _ in data.iter_refs(repo, 'refs/heads/'):
        yield refname.removeprefix('refs/heads/')


def is_branch(repo: Repository, name: str) -> bool:
    return data.get_ref(repo, f'refs/heads/{name}').value is not None


def create_branch(repo: Repository, name: str, oid: types.OID):
    data.update_ref(repo, f'refs/heads/{name}', RefValue(symbolic=False, value=oid))


def create_tag(repo: Repository, name: str, oid: types.OID):
    data.update_ref(repo, f'refs/tags/{name}', RefValue(symbolic=False, value=oid))


def is_ignored(path: types.Path) -> bool:
    return data.GIT_DIR in path.replace('\\', '/').split('/')


def write_tree(repo: Repository, directory: str | None = None) -> types.OID:
    if directory is None:
        directory = repo.root

    entries = []
    with os.scandir(directory) as it:
        for entry in it:
            if is_ignored(os.path.relpath(entry.path, repo.root)):
                continue
            if '\n' in entry.name:
                raise MalformedObject(f'Cannot store file name {entry.name!r}')
            if entry.is_dir(follow_symlinks=False):
                type_ = 'tree'
                oid = write_tree(repo, entry.path)
            elif entry.is_file():
                type_ = 'blob'
                with open(entry.path, 'rb') as f:
                    oid = data.hash_object(repo, f.read())
            else:
                continue
            entries.append((entry.name, oid, type_))

    tree = '\n'.join(f'{type_} {oid} {name}'
                     for name, oid, type_
                     in sorted(entries))
    try:
        raw = tree.encode()
    except UnicodeEncodeError:
        raise MalformedObject(f'File names in {directory} are not valid UTF-8') from None
    return data.hash_object(repo, raw, 'tree')


def _iter_tree_entries(repo: Repository, oid: types.OID | None):
    if not oid:
        return
    tree = data.get_object(repo, oid, 'tree')
    try:
        text = tree.decode()
    except UnicodeDecodeError:
        raise MalformedObject(f'Tree {oid} is not valid UTF-8') from None
    for entry in text.splitlines():
        fields = entry.split(' ', 2)
        if len(fields) != 3:
            raise MalformedObject(f'Bad entry {entry!r} in tree {oid}')
        yield tuple(fields)


def get_tree(repo: Repository, oid: types.OID | None, base_path: types.Path = '') -> types.TreeMap:
    """Flatten the tree ``oid`` into a mapping of file path to blob oid.

    Nested trees are resolved recursively, their paths prefixed with
    ``base_path``. A missing ``oid`` gives an empty mapping.
    """
    result = {}

    def add(path, blob_oid):
        if result.setdefault(path, blob_oid) != blob_oid:
            raise MalformedObject(f'Tree {oid} has several objects for {path}')

    for type_, entry_oid, name in _iter_tree_entries(repo, oid):
        if not name or '/' in name or name in ('..', '.'):
            raise MalformedObject(f'Bad entry name {name!r} in tree {oid}')
        path = base_path + name
        if type_ == 'blob':
            add(path, entry_oid)
        elif type_ == 'tree':
            for sub_path, blob_oid in get_tree(repo, entry_oid, f'{path}/').items():
                add(sub_path, blob_oid)
        else:
            raise MalformedObject(f'Tree {oid} refers to a {type_} entry {name!r}')
    return result


def get_working_tree(repo: Repository) -> types.TreeMap:
    result = {}
    for root, _, filenames in os.walk(repo.root):
        for filename in filenames:
            full_path = os.path.join(root, filename)
            path = os.path.relpath(full_path, repo.root).replace('\\', '/')
            if is_ignored(path) or not os.path.isfile(full_path):
                continue
            with open(full_path, 'rb') as f:
                result[path] = data.hash_object(repo, f.read())
    return result


def read_tree(repo: Repository, tree_oid: types.OID):
    # A malformed tree must fail before the worktree is touched.
    tree = get_tree(repo, tree_oid)
    _empty_working_directory(repo)
    for path, oid in tree.items():
        full_path = os.path.join(repo.root, path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, 'wb') as f:
            f.write(data.get_object(repo, oid))


def _empty_working_directory(repo: Repository):
    for root, dirnames, filenames in os.walk(repo.root, topdown=False):
        for filename in filenames:
            full_path = os.path.join(root, filename)
            if is_ignored(os.path.relpath(full_path, repo.root)):
                continue
            os.remove(full_path)
        for dirname in dirnames:
            full_path = os.path.join(root, dirname)
            if is_ignored(os.path.relpath(full_path, repo.root)):
                continue
            if os.path.islink(full_path):
                os.remove(full_path)
            elif not os.listdir(full_path):
                # holds a nested metadata directory otherwise
                os.rmdir(full_path)


def encode_commit(commit_: types.Commit) -> bytes:
    headers = [f'tree {commit_.tree}']
    if commit_.parent:
        headers.append(f'parent {commit_.parent}')
    return ('\n'.join(headers) + '\n\n' + commit_.message).encode()


def decode_commit(raw: bytes, oid: types.OID = '') -> types.Commit:
    try:
        text = raw.decode()
    except UnicodeDecodeError:
        raise MalformedObject(f'Commit {oid} is not valid UTF-8') from None
    header, _, message = text.partition('\n\n')
    fields = {}
    for line in header.splitlines():
        tokens = line.split()
        if len(tokens) != 2:
            raise MalformedObject(f'Corrupted header line {line!r} in commit {oid}')
        key, value = tokens
        if key not in ('tree', 'parent'):
            raise MalformedObject(f'Unknown field {key!r} in commit {oid}')
        fields[key] = value

    if 'tree' not in fields:
        raise MalformedObject(f'Commit {oid} has no tree')
    return types.Commit(tree=fields['tree'], parent=fields.get('parent'), message=message)


def get_commit(repo: Repository, oid: types.OID) -> types.Commit:
    return decode_commit(data.get_object(repo, oid, 'commit'), oid)


def commit(repo: Repository, message: str) -> types.OID:
    commit_ = types.Commit(
        tree=write_tree(repo),
        parent=data.get_ref(repo, 'HEAD').value,
        message=message,
    )
    oid = data.hash_object(repo, encode_commit(commit_), 'commit')
    data.update_ref(repo, 'HEAD', RefValue(symbolic=False, value=oid))
    logger.debug('Committed %s (parent %s)', oid[:10], commit_.parent and commit_.parent[:10])
    return oid


def checkout(repo: Repository, name: str):
    oid = get_oid(repo, name)
    commit_ = get_commit(repo, oid)
    read_tree(repo, commit_.tree)

    if is_branch(repo, name):
        HEAD = RefValue(symbolic=True, value=f'refs/heads/{name}')
    else:
        HEAD = RefValue(symbolic=False, value=oid)

    data.update_ref(repo, 'HEAD', HEAD, deref=False)
    logger.debug('Checked out %s at %s', name, oid[:10])


def reset(repo: Repository, oid: types.OID):
    commit_ = get_commit(repo, oid)
    read_tree(repo, commit_.tree)
    data.update_ref(repo, 'HEAD', RefValue(symbolic=False, value=oid))
    logger.debug('Reset to %s', oid[:10])


def get_oid(repo: Repository, name: str) -> types.OID:
    if name == '@':
        name = 'HEAD'

    refs_to_try = [
        f'{name}',
        f'refs/{name}',
        f'refs/tags/{name}',
        f'refs/heads/{name}',
    ]
    for ref in refs_to_try:
        if oid := data.get_ref(repo, ref).value:
            return oid

    is_hex = all(c in string.hexdigits for c in name)
    if len(name) == data.OID_LENGTH and is_hex:
        return name

    raise UnknownName(f'Unknown name {name}')


def iter_commits_and_parents(repo: Repository, oids: Iterable[types.OID]) -> Iterable[types.OID]:
    """Yield commit oids reachable from ``oids``, each once.

    A commit's parent is visited right after it. Seeds that are ancestors
    of one another interleave out of chronological order.
    """
    oids = deque(oids)
    visited = set()

    while oids:
        oid = oids.popleft()
        if not oid or oid in visited:
            continue
        visited.add(oid)
        yield oid

        commit_ = get_commit(repo, oid)
        if commit_.parent:
            oids.appendleft(commit_.parent)
