from __future__ import annotations

import argparse
import io
import math
import os
import re
import sys
import time
import uuid
import zipfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    TextIO,
    Tuple,
    Union,
    runtime_checkable,
)
import json5
import pyperclip


# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_PACKAGE = "(Default Package)"
OTHER_FILES = "(Other Project Files)"
UNKNOWN_TYPE = "unknown"

MAX_FILE_SIZE = 5 * 1024 * 1024
MAX_TOTAL_FILES = 200
DEFAULT_WORKERS = min(32, (os.cpu_count() or 4) + 4)

ARCHIVE_SUFFIXES = (".zip",)
STRIPPED_NAME_SUFFIXES = (".zip", ".rar")
UNIFIED_SUFFIX = "_unified"
OUTPUT_EXTENSION = ".txt"
MULTI_PROJECT_NAME = "Unified_Projects"
UNTITLED_PROJECT = "UntitledProject"
NEW_PROJECT = "new"

CHARS_PER_TOKEN = 4


# ============================================================================
# DOMAIN MODELS
# ============================================================================

class ProfileName(Enum):
    """Built-in project profiles."""
    JAVA = "java"
    WEB = "web"
    TOTAL = "total"


class CommentOption(Enum):
    """How banners and source comments are treated when unifying."""
    DEFAULT = "default"
    NO_APP_COMMENTS = "noAppComments"
    REMOVE_PAST_APP_COMMENTS = "removePastAppComments"
    REMOVE_ALL_COMMENTS = "removeAllComments"

    @property
    def shows_banners(self) -> bool:
        return self in (CommentOption.DEFAULT, CommentOption.REMOVE_PAST_APP_COMMENTS)


class ValidationFailure(Enum):
    EMPTY_NAME = "empty name"
    EMPTY_CONTENT = "empty content"
    NO_SELECTION = "no selection"
    UNKNOWN_PROJECT = "unknown project"
    NOT_OTHER_FILE = "not an other file"


class UnifierError(Exception):
    """Base error for the unifier."""


class ValidationError(UnifierError):
    """An operation was declined because its input was invalid."""

    def __init__(self, reason: ValidationFailure, detail: str = ""):
        self.reason = reason
        super().__init__(detail or reason.value)


@dataclass(frozen=True)
class ProjectProfile:
    """Recognized extensions and the subset selected by default."""
    name: ProfileName
    extensions: FrozenSet[str]
    default_selected: FrozenSet[str]

    def __post_init__(self):
        missing = self.default_selected - self.extensions
        if missing:
            raise ValueError(
                f"Profile '{self.name.value}' selects unknown extensions by default: {sorted(missing)}"
            )


@dataclass
class ClassifiedFile:
    """A decoded, classified and grouped file."""
    relative_path: str
    name: str
    content: str
    file_type: str
    group_key: str
    selected: bool = False
    owner_project_id: str = ""


@dataclass
class Project:
    """Named bundle of files derived from one dropped root."""
    id: str
    name: str
    kind: str = "folder"
    files: List[ClassifiedFile] = field(default_factory=list)
    other_files: List[Any] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def create(cls, name: str, kind: str = "folder") -> Project:
        return cls(id=generate_project_id(name), name=name, kind=kind)

    @property
    def selected_files(self) -> List[ClassifiedFile]:
        return [f for f in self.files if f.selected]

    def find_other(self, relative_path: str) -> Optional[Any]:
        for entry in self.other_files:
            if entry.relative_path == relative_path:
                return entry
        return None


@dataclass(frozen=True)
class RecentEntry:
    id: str
    name: str
    timestamp: float
    kind: str

    @classmethod
    def from_project(cls, project: Project) -> RecentEntry:
        return cls(id=project.id, name=project.name, timestamp=time.time(), kind=project.kind)


@dataclass(frozen=True)
class WalkResult:
    """Result of walking a set of dropped entries."""
    projects: List[Project]
    warnings: List[str]
    decoded_files: int
    limit_reached: bool
    elapsed_time: float


@dataclass(frozen=True)
class UnifiedOutput:
    """A rendered document ready for a save or clipboard collaborator."""
    content: str
    file_name: str
    total_files: int
    project_names: List[str]
    estimated_tokens: int


def generate_project_id(name: str) -> str:
    return f"{name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def clean_project_name(name: str) -> str:
    """Derive a display name from a dropped item or a generated output file."""
    base = name.strip()
    lower = base.lower()
    for suffix in STRIPPED_NAME_SUFFIXES:
        if lower.endswith(suffix):
            base = base[: -len(suffix)]
            break
    if base.lower().endswith(UNIFIED_SUFFIX + OUTPUT_EXTENSION):
        base = base[: -len(OUTPUT_EXTENSION)]
    base = re.sub(r"\s*\(\d+\)$", "", base).strip()
    if base.endswith(UNIFIED_SUFFIX):
        base = base[: -len(UNIFIED_SUFFIX)]
    base = base.strip()
    return base if base else UNTITLED_PROJECT


def estimate_tokens(text: str) -> int:
    """Rough token count, about four characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


# ============================================================================
# PROTOCOLS (Interfaces)
# ============================================================================

@runtime_checkable
class LeafEntry(Protocol):
    name: str
    relative_path: str

    @property
    def size(self) -> int: ...
    def read_bytes(self) -> bytes: ...


@runtime_checkable
class ContainerEntry(Protocol):
    name: str
    relative_path: str

    def iter_batches(self) -> Iterator[List[Any]]: ...


RawEntry = Union[LeafEntry, ContainerEntry]


@runtime_checkable
class ArchiveReader(Protocol):
    def open(self, archive: LeafEntry) -> List[LeafEntry]: ...


@runtime_checkable
class WalkListener(Protocol):
    def on_start(self, total: int) -> None: ...
    def on_root(self, name: str) -> None: ...
    def on_warning(self, message: str) -> None: ...
    def on_complete(self, decoded: int, elapsed_time: float) -> None: ...


@runtime_checkable
class OutputWriter(Protocol):
    def write(self, output: UnifiedOutput) -> Optional[Path]: ...


# ============================================================================
# CONFIGURATION MANAGEMENT
# ============================================================================

@dataclass(frozen=True)
class UnifierConfig:
    """Unifier configuration settings."""

    profile: str = ProfileName.JAVA.value
    comment_option: str = CommentOption.DEFAULT.value
    multi_project_mode: bool = True
    max_file_size: int = MAX_FILE_SIZE
    max_total_files: int = MAX_TOTAL_FILES
    max_worker_threads: int = DEFAULT_WORKERS
    output_folder: str = "output"
    copy_to_clipboard: bool = False
    max_recents: int = 3
    reset_on_next_load: bool = False

    def __post_init__(self):
        ProfileName(self.profile)
        CommentOption(self.comment_option)
        if self.max_file_size <= 0 or self.max_total_files <= 0:
            raise ValueError("File size and file count limits must be positive")

    @property
    def profile_name(self) -> ProfileName:
        return ProfileName(self.profile)

    @property
    def comments(self) -> CommentOption:
        return CommentOption(self.comment_option)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UnifierConfig:
        return cls(**{k: data[k] for k in data if k in cls.__annotations__})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_profiles() -> Dict[ProfileName, ProjectProfile]:
    java_extensions = {
        "java", "xml", "pom", "gradle", "properties", "txt", "md", "sql",
        "csv", "yaml", "yml", "classpath", "project", "dat",
    }
    web_extensions = {
        "html", "htm", "css", "scss", "sass", "less", "js", "mjs", "cjs", "ts",
        "jsx", "tsx", "vue", "svelte", "json", "packagejson", "tsconfig",
        "gitignore", "dockerfile", "md", "txt", "svg", "yaml", "yml", "xml", "env",
    }
    scripting_extensions = {"py", "sh", "bash", "bat", "ps1", "rb", "php"}

    java_default = {"java"}
    web_default = {"html", "css", "scss", "js", "ts", "jsx", "tsx", "vue", "svelte"}

    return {
        ProfileName.JAVA: ProjectProfile(
            ProfileName.JAVA, frozenset(java_extensions), frozenset(java_default)
        ),
        ProfileName.WEB: ProjectProfile(
            ProfileName.WEB, frozenset(web_extensions), frozenset(web_default)
        ),
        ProfileName.TOTAL: ProjectProfile(
            ProfileName.TOTAL,
            frozenset(java_extensions | web_extensions | scripting_extensions),
            frozenset(java_default | web_default | {"py"}),
        ),
    }


class ProfileRegistry:
    """Lookup for the immutable built-in profiles."""

    _profiles: Dict[ProfileName, ProjectProfile] = _build_profiles()

    @classmethod
    def get(cls, name: Union[str, ProfileName]) -> ProjectProfile:
        return cls._profiles[ProfileName(name)]

    @classmethod
    def all(cls) -> List[ProjectProfile]:
        return [cls._profiles[p] for p in ProfileName]


class JsonConfigProvider:
    """Handles configuration I/O using a json5 file."""

    def __init__(self, path: Path, stream: Optional[TextIO] = None):
        self.path = path
        self.stream = stream
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> UnifierConfig:
        if not self.path.exists():
            return self._create_default()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json5.load(f)
            config = UnifierConfig.from_dict(data)

            if config.reset_on_next_load:
                print("🔄 Settings reset requested. Resetting to defaults...", file=self.stream)
                return self.reset()

            print(f"✅ Config loaded from: {self.path}", file=self.stream)
            return config
        except Exception as e:
            print(f"❌ Error loading config: {e}. Creating default.", file=self.stream)
            return self._create_default()

    def save(self, config: UnifierConfig) -> None:
        try:
            with self.path.open("w", encoding="utf-8") as f:
                json5.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
            print(f"✅ Config saved to: {self.path}", file=self.stream)
        except IOError as e:
            print(f"❌ Error saving config: {e}", file=self.stream)

    def reset(self) -> UnifierConfig:
        """Reset to factory defaults."""
        default_config = UnifierConfig()
        self.save(default_config)
        print(f"🔄 Config reset to {default_config.profile} defaults.", file=self.stream)
        return default_config

    def _create_default(self) -> UnifierConfig:
        default_config = UnifierConfig()
        self.save(default_config)
        print(f"🆕 Created {default_config.profile} config file.", file=self.stream)
        return default_config


# ============================================================================
# EXTENSION CLASSIFIER
# ============================================================================

class ExtensionClassifier:
    """Map file names to normalized type tags."""

    SPECIAL_FILE_NAMES = {
        "package.json": "packagejson",
        "tsconfig.json": "tsconfig",
        ".gitignore": "gitignore",
        "dockerfile": "dockerfile",
    }
    EXACT_NAMES = {"pom.xml": "pom"}
    BUILD_SCRIPT_SUFFIXES = (".gradle", ".gradle.kts")

    def classify(self, file_name: str, profile: ProjectProfile) -> str:
        name = self._leaf_name(file_name)
        if not name:
            return UNKNOWN_TYPE
        lower = name.lower()

        if lower in self.SPECIAL_FILE_NAMES:
            return self.SPECIAL_FILE_NAMES[lower]

        bare = lower.lstrip(".")
        if "." not in bare:
            return bare if bare in profile.extensions else UNKNOWN_TYPE

        if lower in self.EXACT_NAMES:
            return self.EXACT_NAMES[lower]

        if lower.endswith(self.BUILD_SCRIPT_SUFFIXES):
            return "gradle"

        suffix = lower.rsplit(".", 1)[1]
        return suffix if suffix in profile.extensions else UNKNOWN_TYPE

    def is_recognized(self, file_name: str, profile: ProjectProfile) -> bool:
        file_type = self.classify(file_name, profile)
        return file_type != UNKNOWN_TYPE and file_type in profile.extensions

    def is_default_selected(self, file_type: str, profile: ProjectProfile) -> bool:
        return file_type in profile.default_selected

    def describe_type(self, file_name: str, profile: ProjectProfile) -> str:
        """Classified tag, or the raw suffix for names the profile doesn't know."""
        file_type = self.classify(file_name, profile)
        if file_type != UNKNOWN_TYPE:
            return file_type
        bare = self._leaf_name(file_name).lower().lstrip(".")
        if "." in bare:
            suffix = bare.rsplit(".", 1)[1]
            if suffix:
                return suffix
        return UNKNOWN_TYPE

    @staticmethod
    def is_archive(file_name: str) -> bool:
        return file_name.lower().endswith(ARCHIVE_SUFFIXES)

    @staticmethod
    def _leaf_name(file_name: str) -> str:
        if not file_name:
            return ""
        return file_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1].strip()


# ============================================================================
# ENTRIES & ARCHIVES
# ============================================================================

def _join_path(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


class FsLeafEntry:
    """A file on disk."""

    def __init__(self, path: Path, relative_path: Optional[str] = None):
        self.path = path
        self.name = path.name
        self.relative_path = relative_path if relative_path is not None else path.name

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def __repr__(self) -> str:
        return f"FsLeafEntry({self.relative_path!r})"


class FsContainerEntry:
    """A directory on disk, read in sorted batches."""

    def __init__(self, path: Path, relative_path: str = "", batch_size: int = 100):
        self.path = path
        self.name = path.name
        self.relative_path = relative_path
        self.batch_size = batch_size

    def iter_batches(self) -> Iterator[List[RawEntry]]:
        with os.scandir(self.path) as it:
            items = sorted(it, key=lambda e: e.name)

        for start in range(0, len(items), self.batch_size):
            batch = []
            for item in items[start:start + self.batch_size]:
                child_path = _join_path(self.relative_path, item.name)
                if item.is_symlink() and item.is_dir():
                    continue
                if item.is_dir(follow_symlinks=False):
                    batch.append(FsContainerEntry(Path(item.path), child_path, self.batch_size))
                else:
                    batch.append(FsLeafEntry(Path(item.path), child_path))
            yield batch

    def __repr__(self) -> str:
        return f"FsContainerEntry({self.path.as_posix()!r})"


class BufferLeafEntry:
    """A file handed over as bytes, e.g. from a file picker or a paste."""

    def __init__(self, name: str, data: bytes, relative_path: Optional[str] = None):
        self.name = name
        self.data = data
        self.relative_path = relative_path if relative_path is not None else name

    @property
    def size(self) -> int:
        return len(self.data)

    def read_bytes(self) -> bytes:
        return self.data

    def __repr__(self) -> str:
        return f"BufferLeafEntry({self.relative_path!r})"


class VirtualContainerEntry:
    """An in-memory directory tree built from flat relative paths."""

    def __init__(self, name: str, relative_path: str = "", batch_size: int = 100):
        self.name = name
        self.relative_path = relative_path
        self.batch_size = batch_size
        self.children: List[RawEntry] = []

    @classmethod
    def from_files(cls, name: str, files: Dict[str, bytes]) -> VirtualContainerEntry:
        root = cls(name, name)
        for path, data in files.items():
            parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
            if not parts:
                continue
            node = root
            for part in parts[:-1]:
                node = node._child_dir(part)
            node.children.append(
                BufferLeafEntry(parts[-1], data, _join_path(node.relative_path, parts[-1]))
            )
        return root

    def _child_dir(self, name: str) -> VirtualContainerEntry:
        for child in self.children:
            if isinstance(child, VirtualContainerEntry) and child.name == name:
                return child
        child = VirtualContainerEntry(name, _join_path(self.relative_path, name), self.batch_size)
        self.children.append(child)
        return child

    def iter_batches(self) -> Iterator[List[RawEntry]]:
        for start in range(0, len(self.children), self.batch_size):
            yield list(self.children[start:start + self.batch_size])


class ArchiveMemberEntry:
    """A single member inside a ZIP archive held in memory."""

    def __init__(self, archive_data: bytes, info: zipfile.ZipInfo):
        self._archive_data = archive_data
        self._member = info.filename
        self.relative_path = info.filename.lstrip("/")
        self.name = PurePosixPath(self.relative_path).name
        self._size = info.file_size

    @property
    def size(self) -> int:
        return self._size

    def read_bytes(self) -> bytes:
        with zipfile.ZipFile(io.BytesIO(self._archive_data)) as zf:
            return zf.read(self._member)

    def __repr__(self) -> str:
        return f"ArchiveMemberEntry({self.relative_path!r})"


class ZipArchiveReader:
    """List the file members of a ZIP archive."""

    IGNORED_PREFIXES = ("__MACOSX/",)

    def open(self, archive: LeafEntry) -> List[LeafEntry]:
        data = archive.read_bytes()
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            infos = [
                info for info in zf.infolist()
                if not info.is_dir() and not info.filename.startswith(self.IGNORED_PREFIXES)
            ]
        return [ArchiveMemberEntry(data, info) for info in infos]


def entry_from_path(path: Path) -> RawEntry:
    """Wrap a filesystem path as a dropped root entry."""
    if path.is_dir():
        return FsContainerEntry(path, path.name)
    return FsLeafEntry(path)


# ============================================================================
# GROUPING
# ============================================================================

class GroupResolver:
    """Compute the group key of a file."""

    PACKAGE_PATTERN = re.compile(
        r"^\s*package\s+([A-Za-z_$][\w$]*(?:\s*\.\s*[A-Za-z_$][\w$]*)*)\s*;",
        re.MULTILINE,
    )

    def resolve(self, relative_path: str, content: str, file_type: str, profile: ProjectProfile) -> str:
        if profile.name == ProfileName.JAVA and file_type == "java":
            return self.package_name(content) or DEFAULT_PACKAGE

        if profile.name in (ProfileName.WEB, ProfileName.TOTAL):
            directory = self.directory_of(relative_path)
            return directory if directory else OTHER_FILES

        return OTHER_FILES

    def package_name(self, content: str) -> Optional[str]:
        match = self.PACKAGE_PATTERN.search(content)
        if not match:
            return None
        return re.sub(r"\s+", "", match.group(1))

    @staticmethod
    def directory_of(relative_path: str) -> str:
        parts = [p for p in relative_path.replace("\\", "/").split("/") if p and p != "."]
        return "/".join(parts[:-1])


# ============================================================================
# TREE WALKER
# ============================================================================

@dataclass
class _WalkState:
    decoded: int = 0
    limit_reached: bool = False
    warnings: List[str] = field(default_factory=list)


class TreeWalker:
    """Enumerate dropped entries into classified projects."""

    def __init__(
        self,
        profile: ProjectProfile,
        listener: Optional[WalkListener] = None,
        archive_reader: Optional[ArchiveReader] = None,
        classifier: Optional[ExtensionClassifier] = None,
        resolver: Optional[GroupResolver] = None,
        max_file_size: int = MAX_FILE_SIZE,
        max_total_files: int = MAX_TOTAL_FILES,
        max_worker_threads: int = DEFAULT_WORKERS,
    ):
        self.profile = profile
        self.listener = listener or SilentWalkListener()
        self.archive_reader = archive_reader or ZipArchiveReader()
        self.classifier = classifier or ExtensionClassifier()
        self.resolver = resolver or GroupResolver()
        self.max_file_size = max_file_size
        self.max_total_files = max_total_files
        self.max_worker_threads = max_worker_threads

    @classmethod
    def from_config(cls, config: UnifierConfig, listener: Optional[WalkListener] = None) -> TreeWalker:
        return cls(
            ProfileRegistry.get(config.profile),
            listener=listener,
            max_file_size=config.max_file_size,
            max_total_files=config.max_total_files,
            max_worker_threads=config.max_worker_threads,
        )

    def walk(self, roots: Iterable[RawEntry]) -> WalkResult:
        roots = list(roots)
        state = _WalkState()
        self.listener.on_start(len(roots))
        start_time = time.monotonic()

        projects: Dict[str, Project] = {}
        for root in roots:
            if self._limit_hit(state):
                break
            self.listener.on_root(root.name)

            is_container = isinstance(root, ContainerEntry)
            is_archive = not is_container and self.classifier.is_archive(root.name)

            name = clean_project_name(root.name)
            project = projects.get(name)
            if project is None:
                project = Project.create(name, "folder" if is_container or is_archive else "file")
                projects[name] = project

            if is_container:
                self._collect_leaves(self._iter_container(root, state), project, state)
            elif is_archive:
                self._walk_archive(root, project, state)
            else:
                self._collect_leaves([root], project, state)

        result = [p for p in projects.values() if p.files or p.other_files]
        elapsed = time.monotonic() - start_time
        self.listener.on_complete(state.decoded, elapsed)
        return WalkResult(
            projects=result,
            warnings=state.warnings,
            decoded_files=state.decoded,
            limit_reached=state.limit_reached,
            elapsed_time=elapsed,
        )

    def build_file(self, entry: LeafEntry, project: Project, content: Optional[str] = None) -> ClassifiedFile:
        """Decode an entry and turn it into a ClassifiedFile owned by project."""
        if content is None:
            content = entry.read_bytes().decode("utf-8", errors="replace")
        file_type = self.classifier.describe_type(entry.name, self.profile)
        return ClassifiedFile(
            relative_path=entry.relative_path,
            name=entry.name,
            content=content,
            file_type=file_type,
            group_key=self.resolver.resolve(entry.relative_path, content, file_type, self.profile),
            selected=self.classifier.is_default_selected(file_type, self.profile),
            owner_project_id=project.id,
        )

    def _iter_container(self, container: ContainerEntry, state: _WalkState) -> Iterator[LeafEntry]:
        try:
            for batch in container.iter_batches():
                for child in batch:
                    if isinstance(child, ContainerEntry):
                        yield from self._iter_container(child, state)
                    else:
                        yield child
        except OSError as e:
            self._warn(state, f"Could not read directory {container.relative_path or container.name}: {e}")

    def _collect_leaves(self, leaves: Iterable[LeafEntry], project: Project, state: _WalkState) -> None:
        for leaf in leaves:
            if self._limit_hit(state):
                return
            if not self._triage(leaf, project, state):
                continue
            try:
                project.files.append(self.build_file(leaf, project))
                state.decoded += 1
            except Exception as e:
                self._warn(state, f"Could not read file {leaf.relative_path}: {e}")

    def _walk_archive(self, archive: LeafEntry, project: Project, state: _WalkState) -> None:
        try:
            members = self.archive_reader.open(archive)
        except Exception as e:
            self._warn(state, f"Could not open archive {archive.name}: {e}")
            return

        to_decode: List[LeafEntry] = []
        for member in members:
            if self._limit_hit(state, pending=len(to_decode)):
                break
            if self._triage(member, project, state):
                to_decode.append(member)

        if to_decode:
            self._decode_in_parallel(to_decode, project, state)

    def _decode_in_parallel(self, entries: List[LeafEntry], project: Project, state: _WalkState) -> None:
        with ThreadPoolExecutor(self.max_worker_threads) as executor:
            future_to_entry = {executor.submit(self.build_file, entry, project): entry for entry in entries}
            for future in as_completed(future_to_entry):
                entry = future_to_entry[future]
                try:
                    project.files.append(future.result())
                    state.decoded += 1
                except Exception as e:
                    self._warn(state, f"Could not read archive entry {entry.relative_path}: {e}")

    def _triage(self, entry: LeafEntry, project: Project, state: _WalkState) -> bool:
        """True when the entry should be decoded; other files are parked on the project."""
        try:
            size = entry.size
        except OSError as e:
            self._warn(state, f"Could not access file {entry.relative_path}: {e}")
            return False

        if size > self.max_file_size:
            self._warn(
                state,
                f"File {entry.relative_path} exceeds size limit ({self.max_file_size} bytes) and was skipped.",
            )
            return False

        if not self.classifier.is_recognized(entry.name, self.profile):
            project.other_files.append(entry)
            return False
        return True

    def _limit_hit(self, state: _WalkState, pending: int = 0) -> bool:
        if state.limit_reached:
            return True
        if state.decoded + pending >= self.max_total_files:
            state.limit_reached = True
            self._warn(
                state,
                f"Reached maximum file processing limit ({self.max_total_files}). "
                "Some files may not have been processed.",
            )
            return True
        return False

    def _warn(self, state: _WalkState, message: str) -> None:
        state.warnings.append(message)
        self.listener.on_warning(message)


# ============================================================================
# UNIFICATION
# ============================================================================

_COMMENT_MARK = "\x00"
_QUOTED = r'"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\''


class CommentRemover:
    """Remove comments and earlier unification banners from file content."""

    C_STYLE_TYPES = {
        "java", "js", "mjs", "cjs", "ts", "jsx", "tsx", "scss", "less", "sass",
        "gradle", "tsconfig", "php", "c", "h", "cpp", "cs", "go", "kt", "kts",
        "swift", "rs", "scala", "dart",
    }
    BLOCK_ONLY_TYPES = {"css"}
    MARKUP_TYPES = {"html", "htm", "xml", "pom", "vue", "svelte", "svg", "classpath", "project"}
    HASH_TYPES = {
        "py", "sh", "bash", "zsh", "yaml", "yml", "properties", "dockerfile",
        "gitignore", "env", "rb", "ps1", "toml", "ini", "cfg", "r", "pl",
    }
    SQL_TYPES = {"sql", "psql"}

    C_STYLE_PATTERN = re.compile(rf"({_QUOTED})|(/\*.*?\*/|//[^\n]*)", re.DOTALL)
    BLOCK_PATTERN = re.compile(rf"({_QUOTED})|(/\*.*?\*/)", re.DOTALL)
    MARKUP_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
    SCRIPT_PATTERN = re.compile(r"(<script\b[^>]*>)(.*?)(</script\s*>)", re.DOTALL | re.IGNORECASE)
    STYLE_PATTERN = re.compile(r"(<style\b[^>]*>)(.*?)(</style\s*>)", re.DOTALL | re.IGNORECASE)
    HASH_PATTERN = re.compile(rf"({_QUOTED})|((?:(?<=\s)|^)#[^\n]*)", re.MULTILINE)
    SQL_PATTERN = re.compile(rf"({_QUOTED})|(/\*.*?\*/|--[^\n]*)", re.DOTALL)

    BANNER_PATTERN = re.compile(
        r"^\s*//\s*(?:#{10,}|={10,}|-{10,}|(?:PROJECT|PACKAGE|DIRECTORY|GROUP|PATH):|FILE \()"
    )

    def remove(self, content: str, file_type: str) -> str:
        file_type = file_type.lower()

        if file_type in self.MARKUP_TYPES:
            content = self.MARKUP_PATTERN.sub(_COMMENT_MARK, content)
            content = self.SCRIPT_PATTERN.sub(self._embedded(self.C_STYLE_PATTERN), content)
            content = self.STYLE_PATTERN.sub(self._embedded(self.BLOCK_PATTERN), content)
        elif file_type in self.C_STYLE_TYPES:
            content = self.C_STYLE_PATTERN.sub(self._keep_strings, content)
        elif file_type in self.BLOCK_ONLY_TYPES:
            content = self.BLOCK_PATTERN.sub(self._keep_strings, content)
        elif file_type in self.HASH_TYPES:
            content = self.HASH_PATTERN.sub(self._keep_strings, content)
        elif file_type in self.SQL_TYPES:
            content = self.SQL_PATTERN.sub(self._keep_strings, content)
        else:
            return content

        return self._drop_emptied_lines(content)

    def remove_banners(self, content: str) -> str:
        """Drop banner lines; blank runs around them shrink to one blank line."""
        lines = content.split("\n")
        kept: List[str] = []
        i = 0
        while i < len(lines):
            if lines[i].strip() and not self.BANNER_PATTERN.match(lines[i]):
                kept.append(lines[i])
                i += 1
                continue
            end = i
            while end < len(lines) and (not lines[end].strip() or self.BANNER_PATTERN.match(lines[end])):
                end += 1
            run = lines[i:end]
            blanks = [line for line in run if not self.BANNER_PATTERN.match(line)]
            if len(blanks) == len(run):
                kept.extend(run)
            elif blanks:
                kept.append("")
            i = end
        return "\n".join(kept)

    @classmethod
    def _embedded(cls, pattern: re.Pattern) -> Callable[[re.Match], str]:
        """Strip comments inside a <script> or <style> body only."""
        def strip_body(match: re.Match) -> str:
            body = pattern.sub(cls._keep_strings, match.group(2))
            return match.group(1) + body + match.group(3)
        return strip_body

    @staticmethod
    def _keep_strings(match: re.Match) -> str:
        if match.group(1):
            return match.group(1)
        return _COMMENT_MARK

    @staticmethod
    def _drop_emptied_lines(content: str) -> str:
        cleaned_lines = []
        for line in content.split("\n"):
            if _COMMENT_MARK in line:
                line = line.replace(_COMMENT_MARK, "").rstrip()
                if not line.strip():
                    continue
            cleaned_lines.append(line)
        return "\n".join(cleaned_lines)


class BannerFormatter:
    """Format project, group and file banners."""

    WIDTH = 60
    _DOTTED_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)+$")

    def project_banner(self, name: str) -> List[str]:
        rule = "//" + "#" * self.WIDTH
        return [rule, f"// PROJECT: {name}", rule]

    def group_banner(self, group_key: str) -> List[str]:
        rule = "//" + "=" * self.WIDTH
        return [rule, f"// {self.group_label(group_key)}: {group_key}", rule]

    def file_banner(self, file: ClassifiedFile) -> List[str]:
        rule = "//" + "-" * self.WIDTH
        return [
            rule,
            f"// FILE ({file.file_type.upper()}): {file.name}",
            f"// PATH: {file.relative_path}",
            rule,
        ]

    def group_label(self, group_key: str) -> str:
        if "/" in group_key:
            return "DIRECTORY"
        if group_key == DEFAULT_PACKAGE or self._DOTTED_IDENTIFIER.match(group_key):
            return "PACKAGE"
        return "GROUP"


def group_sort_key(group_key: str) -> Tuple[int, str]:
    if group_key == DEFAULT_PACKAGE:
        return (0, "")
    if group_key == OTHER_FILES:
        return (2, "")
    return (1, group_key)


def group_files(files: Iterable[ClassifiedFile]) -> List[Tuple[str, List[ClassifiedFile]]]:
    """Bucket files by group key in deterministic render order."""
    groups: Dict[str, List[ClassifiedFile]] = {}
    for f in files:
        groups.setdefault(f.group_key, []).append(f)
    return [
        (key, sorted(groups[key], key=lambda f: (f.name, f.relative_path)))
        for key in sorted(groups, key=group_sort_key)
    ]


class UnificationRenderer:
    """Render the selected files of one or more projects into one document."""

    def __init__(self, formatter: Optional[BannerFormatter] = None, remover: Optional[CommentRemover] = None):
        self.formatter = formatter or BannerFormatter()
        self.remover = remover or CommentRemover()

    def render(
        self,
        projects: Optional[List[Project]],
        multi_project_mode: bool,
        comment_option: Union[CommentOption, str] = CommentOption.DEFAULT,
    ) -> str:
        if not projects:
            return ""
        option = CommentOption(comment_option)
        show_banners = option.shows_banners

        rendered: List[str] = []
        for project in projects:
            selected = project.selected_files
            if not selected:
                continue

            lines: List[str] = []
            if show_banners and (multi_project_mode or not rendered):
                lines.extend(self.formatter.project_banner(project.name))
                lines.append("")

            for group_key, group in group_files(selected):
                if show_banners:
                    lines.extend(self.formatter.group_banner(group_key))
                    lines.append("")
                for file in group:
                    content = self._transform(file, option)
                    if not show_banners and not content:
                        continue
                    if show_banners:
                        lines.extend(self.formatter.file_banner(file))
                        lines.append("")
                    lines.append(content)
                    lines.append("")

            block = "\n".join(lines).strip()
            if block:
                rendered.append(block)

        return "\n\n\n".join(rendered).strip()

    def _transform(self, file: ClassifiedFile, option: CommentOption) -> str:
        content = file.content
        if option is CommentOption.REMOVE_PAST_APP_COMMENTS:
            content = self.remover.remove_banners(content)
        elif option is CommentOption.REMOVE_ALL_COMMENTS:
            content = self.remover.remove(content, file.file_type)
        return content.strip()


def suggest_file_name(projects: List[Project]) -> str:
    """Suggested output name for the projects that contributed selected files."""
    contributing = [p for p in projects if p.selected_files]
    if len(contributing) > 1:
        base = MULTI_PROJECT_NAME
    elif contributing:
        base = clean_project_name(contributing[0].name)
    else:
        base = UNTITLED_PROJECT
    safe = re.sub(r"[^A-Za-z0-9_.\-]", "_", base + UNIFIED_SUFFIX)
    if not safe.lower().endswith(OUTPUT_EXTENSION):
        safe += OUTPUT_EXTENSION
    return safe


# ============================================================================
# PROJECT AGGREGATION
# ============================================================================

class ProjectAggregator:
    """Create, extend and merge projects outside of a walk."""

    def __init__(self, profile: ProjectProfile, listener: Optional[WalkListener] = None):
        self.profile = profile
        self.listener = listener or SilentWalkListener()
        self.classifier = ExtensionClassifier()
        self.resolver = GroupResolver()
        self._builder = TreeWalker(profile, listener=self.listener, classifier=self.classifier, resolver=self.resolver)

    def add_manual_file(
        self,
        projects: List[Project],
        name: str,
        content: str,
        target: str = NEW_PROJECT,
    ) -> Project:
        """Add pasted content to an existing project, or as a new one-file project."""
        name = (name or "").strip()
        if not name:
            raise ValidationError(ValidationFailure.EMPTY_NAME, "File name cannot be empty.")
        if not content or not content.strip():
            raise ValidationError(ValidationFailure.EMPTY_CONTENT, "Content cannot be empty.")

        if target == NEW_PROJECT:
            project = Project.create(clean_project_name(name), "file")
        else:
            project = self.find_project(projects, target)

        if "." not in name.lstrip("."):
            self.listener.on_warning(f"File name '{name}' does not seem to have an extension.")

        entry = BufferLeafEntry(name, content.encode("utf-8"))
        classified = self._builder.build_file(entry, project, content=content)
        classified.selected = True
        project.files.append(classified)
        project.timestamp = time.time()

        if target == NEW_PROJECT:
            projects.append(project)
        return project

    def promote_other_file(self, project: Project, entry: LeafEntry) -> Optional[ClassifiedFile]:
        """Decode a parked file and move it into the project's files."""
        if not any(e is entry for e in project.other_files):
            raise ValidationError(
                ValidationFailure.NOT_OTHER_FILE,
                f"{entry.relative_path} is not an other file of {project.name}.",
            )
        try:
            classified = self._builder.build_file(entry, project)
        except Exception as e:
            self.listener.on_warning(f"Could not read file {entry.relative_path}: {e}")
            return None

        classified.selected = True
        project.other_files = [e for e in project.other_files if e is not entry]
        project.files.append(classified)
        project.timestamp = time.time()
        return classified

    def merge_or_append(self, existing: List[Project], new: List[Project]) -> List[Project]:
        """Append new projects; a project whose id is already known is merged into it."""
        merged = list(existing)
        by_id = {p.id: p for p in merged}

        for project in new:
            current = by_id.get(project.id)
            if current is None:
                merged.append(project)
                by_id[project.id] = project
                continue

            known = {f.relative_path for f in current.files}
            for f in project.files:
                if f.relative_path not in known:
                    f.owner_project_id = current.id
                    current.files.append(f)
                    known.add(f.relative_path)

            known_other = {e.relative_path for e in current.other_files}
            current.other_files.extend(e for e in project.other_files if e.relative_path not in known_other)
            current.timestamp = max(current.timestamp, project.timestamp)

        return merged

    def set_selection(self, projects: Iterable[Project], selected: bool) -> None:
        for project in projects:
            for f in project.files:
                f.selected = selected

    def select_primary_only(self, projects: Iterable[Project]) -> None:
        for project in projects:
            for f in project.files:
                f.selected = self.classifier.is_default_selected(f.file_type, self.profile)

    @staticmethod
    def find_project(projects: List[Project], project_id: str) -> Project:
        for project in projects:
            if project.id == project_id:
                return project
        raise ValidationError(ValidationFailure.UNKNOWN_PROJECT, f"No project with id '{project_id}'.")


# ============================================================================
# OUTPUT & PROGRESS
# ============================================================================

class FileOutputWriter:
    """Write a unified document to the output folder."""

    def __init__(self, output_folder: Path):
        self.output_folder = output_folder

    def write(self, output: UnifiedOutput) -> Optional[Path]:
        if not output.content.strip():
            print(f"⚠️ No content to write. Total files: {output.total_files}")
            return None

        output_path = self.output_folder / output.file_name
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(output.content, encoding="utf-8")
            size_kb = output_path.stat().st_size / 1024
            print(f"\n✅ Unified file saved to {output_path} ({size_kb:.1f} KB, ~{output.estimated_tokens} tokens)")
            return output_path
        except IOError as e:
            print(f"❌ Error writing output file: {e}")
            return None


class ClipboardWriter:
    """Copy a unified document to the clipboard."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def write(self, output: UnifiedOutput) -> Optional[Path]:
        if not output.content:
            print("⚠️ No content to copy.", file=self.stream)
            return None
        try:
            pyperclip.copy(output.content)
            print(f"📋 Unified content copied to clipboard ({len(output.content):,} chars).", file=self.stream)
        except pyperclip.PyperclipException as e:
            print(f"❌ Could not copy to clipboard: {e}", file=self.stream)
        return None


class ConsoleWalkListener:
    """Display walk progress in console."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def on_start(self, total: int) -> None:
        print(f"\n📁 Processing {total} dropped item(s)...", file=self.stream)

    def on_root(self, name: str) -> None:
        print(f"  📂 {name}", file=self.stream)

    def on_warning(self, message: str) -> None:
        print(f"  ⚠️ {message}", file=self.stream)

    def on_complete(self, decoded: int, elapsed_time: float) -> None:
        print(f"✅ Read {decoded} file(s) in {elapsed_time:.2f}s.", file=self.stream)


class SilentWalkListener:
    def on_start(self, total: int) -> None:
        pass

    def on_root(self, name: str) -> None:
        pass

    def on_warning(self, message: str) -> None:
        pass

    def on_complete(self, decoded: int, elapsed_time: float) -> None:
        pass


class JsonRecentStore:
    """Keep the most recently processed projects in a json5 file."""

    def __init__(self, path: Path, max_entries: int = 3):
        self.path = path
        self.max_entries = max_entries

    def load(self) -> List[RecentEntry]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json5.load(f)
            return [RecentEntry(**item) for item in data][: self.max_entries]
        except Exception as e:
            print(f"⚠️ Could not read recent history: {e}")
            return []

    def add(self, project: Project) -> List[RecentEntry]:
        entry = RecentEntry.from_project(project)
        entries = [entry] + [e for e in self.load() if e.id != entry.id]
        entries = entries[: self.max_entries]
        self._save(entries)
        return entries

    def remove(self, entry_id: str) -> List[RecentEntry]:
        entries = [e for e in self.load() if e.id != entry_id]
        self._save(entries)
        return entries

    def _save(self, entries: List[RecentEntry]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json5.dump([asdict(e) for e in entries], f, indent=2, ensure_ascii=False)
        except IOError as e:
            print(f"❌ Error saving recent history: {e}")


# ============================================================================
# SESSION
# ============================================================================

class UnificationSession:
    """Working set of projects pending selection and unification."""

    def __init__(
        self,
        config: UnifierConfig,
        listener: Optional[WalkListener] = None,
        recent_store: Optional[JsonRecentStore] = None,
        renderer: Optional[UnificationRenderer] = None,
    ):
        self.config = config
        self.profile = ProfileRegistry.get(config.profile)
        self.listener = listener or SilentWalkListener()
        self.recent_store = recent_store
        self.renderer = renderer or UnificationRenderer()
        self.aggregator = ProjectAggregator(self.profile, self.listener)
        self.projects: List[Project] = []

    def add_roots(self, roots: Iterable[RawEntry]) -> WalkResult:
        result = TreeWalker.from_config(self.config, self.listener).walk(roots)
        self.projects = self.aggregator.merge_or_append(self.projects, result.projects)
        if self.recent_store:
            for project in result.projects:
                if project.files:
                    self.recent_store.add(project)
        return result

    def add_manual_file(self, name: str, content: str, target: str = NEW_PROJECT) -> Project:
        return self.aggregator.add_manual_file(self.projects, name, content, target)

    def promote(self, project_id: str, relative_path: str) -> Optional[ClassifiedFile]:
        project = self.find_project(project_id)
        entry = project.find_other(relative_path)
        if entry is None:
            raise ValidationError(
                ValidationFailure.NOT_OTHER_FILE,
                f"{relative_path} is not an other file of {project.name}.",
            )
        return self.aggregator.promote_other_file(project, entry)

    def find_project(self, project_id: str) -> Project:
        return self.aggregator.find_project(self.projects, project_id)

    def preview(self, project_id: Optional[str] = None) -> str:
        targets = self._targets(project_id)
        return self.renderer.render(targets, self.config.multi_project_mode, self.config.comments)

    def confirm(self, project_id: Optional[str] = None) -> UnifiedOutput:
        """Render the current selection and drop the unified projects from the working set."""
        targets = self._targets(project_id)
        contributing = [p for p in targets if p.selected_files]
        if not contributing:
            raise ValidationError(ValidationFailure.NO_SELECTION, "Please select at least one file.")

        content = self.renderer.render(targets, self.config.multi_project_mode, self.config.comments)
        output = UnifiedOutput(
            content=content,
            file_name=suggest_file_name(contributing),
            total_files=sum(len(p.selected_files) for p in contributing),
            project_names=[p.name for p in contributing],
            estimated_tokens=estimate_tokens(content),
        )

        target_ids = {p.id for p in targets}
        self.projects = [p for p in self.projects if p.id not in target_ids]
        return output

    def cancel(self) -> None:
        self.projects = []

    def _targets(self, project_id: Optional[str]) -> List[Project]:
        if self.config.multi_project_mode and project_id is None:
            return list(self.projects)
        if project_id is not None:
            return [self.find_project(project_id)]
        return self.projects[:1]


# ============================================================================
# USER INTERACTION
# ============================================================================

def parse_toggle_selection(sel_str: str, count: int) -> List[int]:
    """Parse '1, 3, 5-7' into zero-based indexes below count."""
    indexes: List[int] = []
    for item in sel_str.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            if "-" in item:
                first, last = (int(p) for p in item.split("-", 1))
                numbers = range(first, last + 1)
            else:
                numbers = [int(item)]
        except ValueError:
            print(f"⚠️ Invalid selection: '{item}'")
            continue
        for number in numbers:
            if 1 <= number <= count:
                if number - 1 not in indexes:
                    indexes.append(number - 1)
            else:
                print(f"⚠️ Invalid file number: {number}")
    return indexes


class SelectionMenu:
    """Interactive console selection of the files to unify."""

    def __init__(self, session: UnificationSession, input_func: Callable[[str], str] = input):
        self.session = session
        self.input_func = input_func

    def run(self) -> None:
        while True:
            files = self._show_files()
            choice = self.input_func(
                "\n👉 Toggle files (e.g. 1, 3, 5-7), [a]ll, [n]one, [p]rimary, [o]ther files, Enter to unify: "
            ).strip().lower()

            if not choice:
                return
            if choice == "a":
                self.session.aggregator.set_selection(self.session.projects, True)
            elif choice == "n":
                self.session.aggregator.set_selection(self.session.projects, False)
            elif choice == "p":
                self.session.aggregator.select_primary_only(self.session.projects)
            elif choice == "o":
                self._promote_menu()
            else:
                for index in parse_toggle_selection(choice, len(files)):
                    files[index].selected = not files[index].selected

    def _show_files(self) -> List[ClassifiedFile]:
        listed: List[ClassifiedFile] = []
        print("\n" + "─" * 60)
        for project in self.session.projects:
            print(f"📦 {project.name} ({len(project.selected_files)}/{len(project.files)} selected)")
            for group_key, group in group_files(project.files):
                print(f"   {group_key}")
                for f in group:
                    listed.append(f)
                    mark = "✓" if f.selected else " "
                    print(f"    [{len(listed):3}] [{mark}] {f.name} ({f.file_type})")
            if project.other_files:
                print(f"   ➕ {len(project.other_files)} other file(s) available")
        print("─" * 60)
        return listed

    def _promote_menu(self) -> None:
        others = [(p, e) for p in self.session.projects for e in p.other_files]
        if not others:
            print("ℹ️  No other files to add.")
            return
        for i, (project, entry) in enumerate(others, start=1):
            print(f"    [{i:3}] {project.name}: {entry.relative_path}")
        sel = self.input_func("\n👉 Add other files (e.g. 1, 2): ").strip()
        for index in parse_toggle_selection(sel, len(others)):
            project, entry = others[index]
            promoted = self.session.aggregator.promote_other_file(project, entry)
            if promoted:
                print(f"  ✓ Added {promoted.relative_path} to {project.name}")


# ============================================================================
# COMPOSITION ROOT & ENTRY POINT
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-unifier",
        description="Unify project files (Java, Web, etc.) into a single text document for LLM prompts.",
    )
    parser.add_argument("paths", nargs="+", help="Folders, files or .zip archives to unify")
    parser.add_argument("--profile", choices=[p.value for p in ProfileName], help="Project profile")
    parser.add_argument("--comments", choices=[c.value for c in CommentOption], help="Comment handling")
    parser.add_argument("--single", action="store_true", help="Unify each project into its own file")

    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--all", action="store_true", help="Select every recognized file")
    selection.add_argument("--none", action="store_true", help="Start with nothing selected")
    selection.add_argument("--primary", action="store_true", help="Select only the profile's primary files")

    parser.add_argument("--interactive", "-i", action="store_true", help="Choose files in an interactive menu")
    parser.add_argument("--stdout", action="store_true", help="Print the result instead of saving it")
    parser.add_argument("--clipboard", action="store_true", help="Also copy the result to the clipboard")
    parser.add_argument("--output-dir", help="Folder for the unified file")
    parser.add_argument("--config", help="Path of the json5 settings file (default: output/settings.json)")
    return parser


def _apply_overrides(config: UnifierConfig, args: argparse.Namespace) -> UnifierConfig:
    overrides: Dict[str, Any] = {}
    if args.profile:
        overrides["profile"] = args.profile
    if args.comments:
        overrides["comment_option"] = args.comments
    if args.single:
        overrides["multi_project_mode"] = False
    if args.output_dir:
        overrides["output_folder"] = args.output_dir
    if args.clipboard:
        overrides["copy_to_clipboard"] = True
    return replace(config, **overrides) if overrides else config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)
    # --stdout carries only the document
    status = sys.stderr if args.stdout else None

    config_path = Path(args.config) if args.config else Path.cwd() / "output" / "settings.json"
    config = _apply_overrides(JsonConfigProvider(config_path, stream=status).load(), args)

    roots: List[RawEntry] = []
    for raw in args.paths:
        path = Path(raw)
        if not path.exists():
            print(f"❌ Error: Provided path '{path}' does not exist.", file=status)
            continue
        roots.append(entry_from_path(path))
    if not roots:
        return 1

    session = UnificationSession(
        config,
        listener=ConsoleWalkListener(stream=status),
        recent_store=JsonRecentStore(config_path.parent / "recents.json", config.max_recents),
    )
    session.add_roots(roots)
    if not session.projects:
        print(f"❌ No supported files found for the '{config.profile}' profile.", file=status)
        return 1

    if args.all:
        session.aggregator.set_selection(session.projects, True)
    elif args.none:
        session.aggregator.set_selection(session.projects, False)
    elif args.primary:
        session.aggregator.select_primary_only(session.projects)

    if args.interactive:
        try:
            SelectionMenu(session).run()
        except (KeyboardInterrupt, EOFError):
            print("\n\n⏹️ Operation cancelled.", file=status)
            session.cancel()
            return 1

    outputs: List[UnifiedOutput] = []
    try:
        if config.multi_project_mode:
            outputs.append(session.confirm())
        else:
            for project in list(session.projects):
                if project.selected_files:
                    outputs.append(session.confirm(project.id))
            if not outputs:
                raise ValidationError(ValidationFailure.NO_SELECTION, "Please select at least one file.")
    except ValidationError as e:
        print(f"❌ {e}", file=status)
        return 1

    writers: List[OutputWriter] = []
    if not args.stdout:
        writers.append(FileOutputWriter(Path(config.output_folder)))
    if config.copy_to_clipboard:
        writers.append(ClipboardWriter(stream=status))

    for output in outputs:
        if args.stdout:
            print(output.content)
        for writer in writers:
            writer.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
