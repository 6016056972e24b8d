from typing import TypeAlias, NamedTuple, Literal

Path: TypeAlias = str  # a path in the filesystem, '/'-separated
OID: TypeAlias = str  # hash
TreeMap: TypeAlias = dict[Path, OID]
ObjectType: TypeAlias = Literal['blob', 'tree', 'commit']
Action: TypeAlias = Literal['new file', 'deleted', 'modified']


class Object(NamedTuple):
    type: ObjectType
    contents: bytes


class Commit(NamedTuple):
    tree: OID
    parent: OID | None
    message: str


class RefValue(NamedTuple):
    symbolic: bool
    value: str | None
