"""
Shadow state: the fuzzer's independent model of expected drive content.

The model is updated only after the matching drive call has resolved.
"""

from dataclasses import dataclass, field
from typing import Dict, Generic, Iterator, List, Optional, Set, Tuple, TypeVar

from ..core.rng import SeededRandomSource

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class FileRecord:
    path: str
    content: bytes


@dataclass(frozen=True)
class DirectoryRecord:
    """
    Directory created by write-and-mkdir.

    Fields:
        offset / byte_offset: Content feed counters captured just before
            the combined operation started
    """
    path: str
    offset: int
    byte_offset: int


@dataclass
class FileDescriptor:
    """
    Descriptor opened by the open-fd operation.

    Fields:
        position: Cursor; the first read starts here, later reads continue
        started: Whether the first read has been issued
        content: Content snapshot taken at open time
    """
    fd: int
    path: str
    position: int
    content: bytes
    started: bool = False


class TrackedCollection(Generic[K, V]):
    """
    Dict with an explicit positional index.

    pick() selects by position, so the choice depends only on the draw and
    the sequence of set/remove calls. Removal moves the last entry into the
    vacated slot.
    """

    def __init__(self) -> None:
        self._values: Dict[K, V] = {}
        self._keys: List[K] = []
        self._positions: Dict[K, int] = {}

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._keys))

    def get(self, key: K) -> Optional[V]:
        return self._values.get(key)

    def set(self, key: K, value: V) -> None:
        if key not in self._values:
            self._positions[key] = len(self._keys)
            self._keys.append(key)
        self._values[key] = value

    def remove(self, key: K) -> Optional[V]:
        """Remove key if present; a missing key is not an error."""
        if key not in self._values:
            return None
        value = self._values.pop(key)
        position = self._positions.pop(key)
        last = self._keys.pop()
        if last != key:
            self._keys[position] = last
            self._positions[last] = position
        return value

    def at(self, position: int) -> Tuple[K, V]:
        key = self._keys[position]
        return key, self._values[key]

    def pick(self, rng: SeededRandomSource) -> Optional[Tuple[K, V]]:
        """Uniformly pick an entry, or None when empty (no draw consumed)."""
        position = rng.random_int(len(self._keys) - 1)
        if position is None:
            return None
        return self.at(position)

    def items(self) -> Iterator[Tuple[K, V]]:
        for key in list(self._keys):
            yield key, self._values[key]


@dataclass
class ShadowState:
    """
    Expected committed content.

    Invariant: file and directory keys are disjoint. Callers claim a path
    only after checking claims() is False.
    """
    files: TrackedCollection = field(default_factory=TrackedCollection)
    directories: TrackedCollection = field(default_factory=TrackedCollection)
    descriptors: TrackedCollection = field(default_factory=TrackedCollection)

    def claims(self, path: str) -> bool:
        return path in self.files or path in self.directories

    def record_write(self, path: str, content: bytes) -> FileRecord:
        if path in self.directories:
            raise ValueError(f"{path!r} is tracked as a directory")
        record = FileRecord(path=path, content=bytes(content))
        self.files.set(path, record)
        return record

    def record_delete(self, path: str) -> Optional[FileRecord]:
        return self.files.remove(path)

    def record_directory(self, record: DirectoryRecord) -> None:
        if record.path in self.files or record.path in self.directories:
            raise ValueError(f"{record.path!r} is already tracked")
        self.directories.set(record.path, record)

    def track_descriptor(self, descriptor: FileDescriptor) -> None:
        self.descriptors.set(descriptor.fd, descriptor)

    def release_descriptor(self, fd: int) -> bool:
        """Untrack a descriptor; an unknown fd is already terminal."""
        return self.descriptors.remove(fd) is not None

    def expected_children(self, directory: str) -> Set[str]:
        """Immediate child names under directory implied by tracked paths."""
        prefix = f"{directory}/"
        children = set()
        for collection in (self.files, self.directories):
            for path in collection:
                if path.startswith(prefix):
                    children.add(path[len(prefix) :].split("/", 1)[0])
        return children
