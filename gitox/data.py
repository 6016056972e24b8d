import os
import hashlib
import logging
from typing import Iterable, NamedTuple, get_args

from gitox import types
from gitox.errors import MalformedObject, ObjectNotFound, SymbolicRefCycle, TypeMismatch
from gitox.types import RefValue

logger = logging.getLogger(__name__)

GIT_DIR = '.gitox'
OBJECTS_DIR = 'objects'
REFS_DIR = 'refs'
OID_LENGTH = 40

SYMBOLIC_PREFIX = 'ref:'


class Repository(NamedTuple):
    """Handle on a working directory and the metadata directory inside it."""
    root: str

    @property
    def git_dir(self) -> str:
        return os.path.join(self.root, GIT_DIR)

    def path(self, *parts: str) -> str:
        """Physical location of ``parts`` below the metadata directory."""
        return os.path.join(self.git_dir, *parts)


def init(repo: Repository) -> None:
    os.makedirs(repo.path(OBJECTS_DIR), exist_ok=True)
    os.makedirs(repo.path(REFS_DIR), exist_ok=True)


def _object_path(repo: Repository, oid: types.OID) -> str:
    return repo.path(OBJECTS_DIR, oid)


def hash_object(repo: Repository, data: bytes, type_: types.ObjectType = 'blob') -> types.OID:
    obj = type_.encode() + b'\x00' + data
    oid = hashlib.sha1(obj).hexdigest()
    path = _object_path(repo, oid)
    if os.path.isfile(path):
        logger.debug('Object %s already stored, skipped', oid[:10])
        return oid
    with open(path, 'wb') as out:
        out.write(obj)
    logger.debug('Stored %s %s (%d bytes)', type_, oid[:10], len(data))
    return oid


def object_exists(repo: Repository, oid: types.OID) -> bool:
    return os.path.isfile(_object_path(repo, oid))


def read_object(repo: Repository, oid: types.OID,
                expected: types.ObjectType | None = None) -> types.Object:
    try:
        with open(_object_path(repo, oid), 'rb') as f:
            obj = f.read()
    except FileNotFoundError:
        raise ObjectNotFound(f'Object {oid} not found') from None

    type_, sep, content = obj.partition(b'\x00')
    if not sep:
        raise MalformedObject(f'Object {oid} has no type header')
    type_ = type_.decode(errors='replace')
    if type_ not in get_args(types.ObjectType):
        raise MalformedObject(f'Object {oid} has unknown type {type_!r}')
    if expected is not None and type_ != expected:
        raise TypeMismatch(f'Expected {expected}, got {type_} for object {oid}')
    return types.Object(type=type_, contents=content)


def get_object(repo: Repository, oid: types.OID,
               expected: types.ObjectType | None = 'blob') -> bytes:
    return read_object(repo, oid, expected).contents


def update_ref(repo: Repository, ref: str, value: RefValue, deref=True) -> None:
    ref = _get_ref_internal(repo, ref, deref)[0]

    if not value.value:
        raise ValueError('Cannot update a reference with an empty value')
    if value.symbolic:
        raw = f'{SYMBOLIC_PREFIX} {value.value}'
    else:
        raw = value.value
    ref_path = repo.path(ref)
    os.makedirs(os.path.dirname(ref_path), exist_ok=True)
    with open(ref_path, 'w') as f:
        f.write(raw)
    logger.debug('Updated %s to %s', ref, raw)


def get_ref(repo: Repository, ref: str, deref=True) -> RefValue:
    return _get_ref_internal(repo, ref, deref)[1]


def delete_ref(repo: Repository, ref: str, deref=True) -> None:
    ref = _get_ref_internal(repo, ref, deref)[0]
    os.remove(repo.path(ref))
    logger.debug('Deleted %s', ref)


def _read_ref_file(repo: Repository, ref: str) -> str | None:
    ref_path = repo.path(ref)
    if not os.path.isfile(ref_path):
        return None
    with open(ref_path) as f:
        return f.read().strip()


def _get_ref_internal(repo: Repository, ref: str, deref: bool) -> tuple[str, RefValue]:
    """Return the physical ref name reached from ``ref`` and its value.

    With ``deref`` the symbolic chain is followed to its last link, which may
    be absent. Without it only ``ref`` itself is read.
    """
    seen = []
    while True:
        if ref in seen:
            chain = ' -> '.join(seen + [ref])
            raise SymbolicRefCycle(f'Symbolic reference cycle: {chain}')
        seen.append(ref)

        value = _read_ref_file(repo, ref)
        symbolic = bool(value) and value.startswith(SYMBOLIC_PREFIX)
        if symbolic:
            value = value.split(':', 1)[1].strip()
            if deref:
                ref = value
                continue
        return ref, RefValue(symbolic=symbolic, value=value or None)


def iter_refs(repo: Repository, prefix='', deref=True) -> Iterable[tuple[str, RefValue]]:
    refs = ['HEAD']
    for root, _, filenames in os.walk(repo.path(REFS_DIR)):
        root = os.path.relpath(root, repo.git_dir).replace('\\', '/')
        refs.extend(f'{root}/{name}' for name in filenames)

    for refname in refs:
        if not refname.startswith(prefix):
            continue
        ref = get_ref(repo, refname, deref=deref)
        if ref.value:
            yield refname, ref
