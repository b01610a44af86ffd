"""
Directory mirror for hostkit.

This module copies a source directory tree into a destination tree, one way.
Files are copied only when the source copy is strictly newer than the
destination copy, missing subdirectories are created, and destination-only
entries are left alone unless the caller asks for a clean destination, in which
case the whole destination tree is deleted first.
"""

import errno
import os
import shutil
import logging
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from ..models.mirror import MirrorTask, MirrorResult, MirrorFailure, MirrorErrorKind
from ..models.config import HostKitConfig, ContainmentCheck


logger = logging.getLogger(__name__)


def _log(level: int, message: str) -> None:
    """Emit a mirror log message; a failing sink never interrupts the walk."""
    try:
        logger.log(level, message)
    except Exception:
        pass


class DirectoryMirror:
    """
    One-way, additive directory synchronizer.

    This class walks the source tree depth-first and:
    - Creates destination directories one level at a time
    - Copies files whose source modification time is strictly newer
    - Records copy and directory failures without stopping the walk
    - Refuses destinations that are the source or lie inside it
    """

    def __init__(self, config: Optional[HostKitConfig] = None):
        """
        Initialize the directory mirror.

        Args:
            config: Configuration object holding the mirror settings
        """
        self.config = config or HostKitConfig()
        self._failures: List[MirrorFailure] = []
        self._active_dirs: Set[str] = set()
        self._stats = self._empty_stats()

    def mirror(self, source: Union[str, Path], destination: Union[str, Path], clean: bool = False) -> MirrorResult:
        """
        Mirror a source tree into a destination tree.

        Args:
            source: Directory tree to copy from
            destination: Directory tree to copy into
            clean: Delete the destination tree before copying

        Returns:
            MirrorResult describing the outcome; only a self-copy, an unreadable
            source or a failed clean make it unsuccessful
        """
        task = MirrorTask(source_path=source, destination_path=destination, clean=clean)
        self.reset_stats()

        if self.is_self_copy(task.source_path, task.destination_path):
            _log(logging.ERROR, f"Refusing to mirror {task.source_path} into itself: {task.destination_path}")
            return self._terminal(task, MirrorFailure(
                kind=MirrorErrorKind.SELF_COPY_REJECTED,
                path=task.destination_path,
                message="Destination is the source directory or lies inside it"
            ))

        if not task.source.is_dir():
            _log(logging.ERROR, f"Source directory does not exist: {task.source_path}")
            return self._terminal(task, MirrorFailure(
                kind=MirrorErrorKind.SOURCE_UNREADABLE,
                path=task.source_path,
                message="Source is not a directory"
            ))

        if task.clean and os.path.lexists(task.destination):
            _log(logging.INFO, f"Cleaning destination directory: {task.destination}")
            try:
                self._remove_destination(task.destination)
            except OSError as e:
                _log(logging.ERROR, f"Failed to clean destination {task.destination}: {e}")
                return self._terminal(task, MirrorFailure(
                    kind=MirrorErrorKind.CLEAN_FAILED,
                    path=task.destination_path,
                    native_code=e.errno if e.errno is not None else errno.EIO,
                    message=str(e)
                ))

        _log(logging.INFO, f"Mirroring {task.source} -> {task.destination}")
        self._copy_tree(task.source, task.destination)

        if self._failures:
            _log(logging.WARNING, f"Mirror finished with {len(self._failures)} failures")

        return MirrorResult(
            task=task,
            succeeded=True,
            failures=list(self._failures),
            stats=self.get_stats()
        )

    def is_self_copy(self, source: Union[str, Path], destination: Union[str, Path]) -> bool:
        """
        Check whether the destination is the source or nested inside it.

        In 'resolved' mode both paths are made absolute with symlinks resolved
        and compared component-wise. In 'prefix' mode the raw path strings are
        compared, so '/data/src2' counts as inside '/data/src'.
        """
        if self.config.mirror.containment_check == ContainmentCheck.PREFIX:
            return str(destination).startswith(str(source))

        source_str = os.path.normcase(str(Path(source).resolve()))
        destination_str = os.path.normcase(str(Path(destination).resolve()))
        if destination_str == source_str:
            return True
        return destination_str.startswith(source_str.rstrip(os.sep) + os.sep)

    def _remove_destination(self, destination: Path) -> None:
        """
        Delete the destination before a clean mirror.

        A symlink is unlinked rather than followed, so the directory it points
        at is left untouched. Plain files are unlinked too; only a real
        directory is removed recursively.
        """
        if os.path.islink(destination) or os.path.isfile(destination):
            os.unlink(destination)
        else:
            shutil.rmtree(destination)

    def _copy_tree(self, source_dir: Path, target_dir: Path) -> None:
        """
        Recursively copy one directory level and descend into subdirectories.

        Args:
            source_dir: Directory to read entries from
            target_dir: Directory to copy entries into
        """
        real_source = os.path.realpath(source_dir)
        if real_source in self._active_dirs:
            _log(logging.WARNING, f"Skipping directory loop at {source_dir}")
            self._stats['entries_skipped'] += 1
            return

        if not self._ensure_directory(target_dir):
            return

        try:
            with os.scandir(source_dir) as iterator:
                entries = list(iterator)
        except OSError as e:
            _log(logging.ERROR, f"Cannot read directory {source_dir}: {e}")
            self._record(MirrorErrorKind.SOURCE_UNREADABLE, source_dir, e)
            return

        self._stats['directories_traversed'] += 1
        self._active_dirs.add(real_source)
        try:
            for entry in entries:
                self._process_entry(entry, target_dir)
        finally:
            self._active_dirs.discard(real_source)

    def _process_entry(self, entry: os.DirEntry, target_dir: Path) -> None:
        """Dispatch a single directory entry by type."""
        follow = self.config.mirror.follow_symlinks
        source_path = Path(entry.path)

        try:
            if entry.is_symlink() and not follow:
                _log(logging.DEBUG, f"Skipping symlink: {source_path}")
                self._stats['entries_skipped'] += 1
                return

            if entry.is_file(follow_symlinks=follow):
                self._sync_file(source_path, target_dir / entry.name)
            elif entry.is_dir(follow_symlinks=follow):
                self._copy_tree(source_path, target_dir / entry.name)
            else:
                _log(logging.DEBUG, f"Skipping special file: {source_path}")
                self._stats['entries_skipped'] += 1
        except OSError as e:
            _log(logging.ERROR, f"Cannot inspect {source_path}: {e}")
            self._record(MirrorErrorKind.SOURCE_UNREADABLE, source_path, e)

    def _ensure_directory(self, target_dir: Path) -> bool:
        """
        Create a destination directory if it is missing.

        The parent must already exist. A failure is recorded and the caller
        skips the subtree.

        Returns:
            True if the directory exists afterwards
        """
        if target_dir.is_dir():
            return True

        try:
            os.mkdir(target_dir)
        except OSError as e:
            _log(logging.ERROR, f"Failed to create directory {target_dir}: {e}")
            self._stats['directory_errors'] += 1
            self._record(MirrorErrorKind.DIRECTORY_CREATE_FAILED, target_dir, e)
            return False

        self._stats['directories_created'] += 1
        _log(logging.DEBUG, f"Created directory: {target_dir}")
        return True

    def _sync_file(self, source_file: Path, target_file: Path) -> None:
        """
        Copy a file unless the destination copy is at least as new.

        Equal modification times count as up to date. The copy keeps the
        source's timestamps so an unchanged file is skipped on the next run.
        """
        try:
            if target_file.exists():
                source_mtime = source_file.stat().st_mtime_ns
                target_mtime = target_file.stat().st_mtime_ns
                if source_mtime <= target_mtime:
                    self._stats['files_skipped'] += 1
                    _log(logging.DEBUG, f"Up to date: {target_file}")
                    return

            shutil.copyfile(source_file, target_file)
            shutil.copystat(source_file, target_file)

        except OSError as e:
            _log(logging.ERROR, f"Failed to copy {source_file} -> {target_file}: {e}")
            self._stats['copy_errors'] += 1
            self._record(MirrorErrorKind.FILE_COPY_FAILED, source_file, e)
            return

        self._stats['files_copied'] += 1
        _log(logging.INFO, f"Copied {source_file} -> {target_file}")

    def _record(self, kind: MirrorErrorKind, path: Path, error: OSError) -> None:
        self._failures.append(MirrorFailure(
            kind=kind,
            path=str(path),
            native_code=error.errno,
            message=error.strerror or str(error)
        ))

    def _terminal(self, task: MirrorTask, failure: MirrorFailure) -> MirrorResult:
        return MirrorResult(task=task, succeeded=False, error=failure, stats=self.get_stats())

    def _empty_stats(self) -> Dict[str, int]:
        return {
            'files_copied': 0,
            'files_skipped': 0,
            'directories_created': 0,
            'directories_traversed': 0,
            'entries_skipped': 0,
            'copy_errors': 0,
            'directory_errors': 0
        }

    def get_stats(self) -> Dict[str, int]:
        """
        Get statistics about the last mirror operation.

        Returns:
            Dictionary containing operation statistics
        """
        return self._stats.copy()

    def reset_stats(self) -> None:
        """Reset the statistics counters and recorded failures."""
        self._stats = self._empty_stats()
        self._failures = []
        self._active_dirs = set()


def mirror_directory(source: Union[str, Path], destination: Union[str, Path], clean: bool = False,
                     config: Optional[HostKitConfig] = None) -> MirrorResult:
    """
    Convenience function to mirror one directory tree into another.

    Args:
        source: Directory tree to copy from
        destination: Directory tree to copy into
        clean: Delete the destination tree before copying
        config: Configuration (defaults apply if None)

    Returns:
        MirrorResult describing the outcome
    """
    return DirectoryMirror(config).mirror(source, destination, clean)
