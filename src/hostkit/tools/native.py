"""
Native backends for sized queries.

A backend answers one "size-then-fill" call at a time: given a query kind, its
argument and a buffer capacity (0 for the sizing call), it returns a
NativeReply carrying the reported size, the error code the call left behind,
and the buffer contents. The error code travels with the reply so callers never
read a process-wide error register themselves.

On Windows the calls go straight to kernel32 through ctypes. Elsewhere an
emulation reproduces the same reply conventions over os.environ, os.getcwd and
a process-wide search-path directory register.
"""

import os
import sys
import platform
import logging
from typing import Optional, Protocol

from ..models.query_result import (
    QueryKind,
    NativeReply,
    ERROR_SUCCESS,
    ERROR_ENVVAR_NOT_FOUND,
)


logger = logging.getLogger(__name__)


class NativeBackend(Protocol):
    """Interface of an OS sized-query backend."""

    def call(self, kind: QueryKind, argument: Optional[str], capacity: int, preclear: bool = False) -> NativeReply:
        ...

    def set_search_path_directory(self, path: Optional[str]) -> bool:
        ...


class Win32Backend:
    """
    Sized queries answered by kernel32.

    Each call reads the thread's last-error value only when the API returned 0,
    and clears it first when ``preclear`` is set, so that a 0 returned on
    success can be told apart from a 0 returned on failure.
    """

    def __init__(self):
        import ctypes
        from ctypes import wintypes

        self._ctypes = ctypes
        kernel32 = ctypes.WinDLL('kernel32', use_last_error=True)

        self._expand = kernel32.ExpandEnvironmentStringsW
        self._expand.argtypes = [wintypes.LPCWSTR, wintypes.LPWSTR, wintypes.DWORD]
        self._expand.restype = wintypes.DWORD

        self._getenv = kernel32.GetEnvironmentVariableW
        self._getenv.argtypes = [wintypes.LPCWSTR, wintypes.LPWSTR, wintypes.DWORD]
        self._getenv.restype = wintypes.DWORD

        self._getcwd = kernel32.GetCurrentDirectoryW
        self._getcwd.argtypes = [wintypes.DWORD, wintypes.LPWSTR]
        self._getcwd.restype = wintypes.DWORD

        self._get_dll_dir = kernel32.GetDllDirectoryW
        self._get_dll_dir.argtypes = [wintypes.DWORD, wintypes.LPWSTR]
        self._get_dll_dir.restype = wintypes.DWORD

        self._set_dll_dir = kernel32.SetDllDirectoryW
        self._set_dll_dir.argtypes = [wintypes.LPCWSTR]
        self._set_dll_dir.restype = wintypes.BOOL

        class SYSTEM_INFO(ctypes.Structure):
            _fields_ = [
                ('wProcessorArchitecture', wintypes.WORD),
                ('wReserved', wintypes.WORD),
                ('dwPageSize', wintypes.DWORD),
                ('lpMinimumApplicationAddress', wintypes.LPVOID),
                ('lpMaximumApplicationAddress', wintypes.LPVOID),
                ('dwActiveProcessorMask', ctypes.c_size_t),
                ('dwNumberOfProcessors', wintypes.DWORD),
                ('dwProcessorType', wintypes.DWORD),
                ('dwAllocationGranularity', wintypes.DWORD),
                ('wProcessorLevel', wintypes.WORD),
                ('wProcessorRevision', wintypes.WORD),
            ]

        self._system_info_type = SYSTEM_INFO
        self._native_system_info = kernel32.GetNativeSystemInfo
        self._native_system_info.argtypes = [ctypes.POINTER(SYSTEM_INFO)]
        self._native_system_info.restype = None

    def call(self, kind: QueryKind, argument: Optional[str], capacity: int, preclear: bool = False) -> NativeReply:
        ctypes = self._ctypes
        buffer = ctypes.create_unicode_buffer(capacity) if capacity else None

        if preclear:
            ctypes.set_last_error(ERROR_SUCCESS)

        if kind == QueryKind.EXPAND_TEMPLATE:
            size = self._expand(argument, buffer, capacity)
        elif kind == QueryKind.LOOKUP_VARIABLE:
            size = self._getenv(argument, buffer, capacity)
        elif kind == QueryKind.CURRENT_DIRECTORY:
            size = self._getcwd(capacity, buffer)
        elif kind == QueryKind.SEARCH_PATH_DIRECTORY:
            size = self._get_dll_dir(capacity, buffer)
        else:
            raise ValueError(f"Unsupported query kind: {kind}")

        error_code = ctypes.get_last_error() if size == 0 else ERROR_SUCCESS
        data = buffer.value if buffer is not None else ""
        return NativeReply(size=size, error_code=error_code, data=data)

    def set_search_path_directory(self, path: Optional[str]) -> bool:
        return bool(self._set_dll_dir(path))

    def native_processor_architecture(self) -> int:
        """Processor architecture of the machine, not of this (possibly emulated) process."""
        info = self._system_info_type()
        self._native_system_info(self._ctypes.byref(info))
        return info.wProcessorArchitecture


_search_path_directory = ""


class EmulatedBackend:
    """
    Sized queries emulated on platforms without kernel32.

    Replies follow the Win32 conventions exactly: sizes count the terminator
    when the buffer is too small, expansion counts it on success too, a missing
    variable answers 0 with ERROR_ENVVAR_NOT_FOUND, and an unset search-path
    directory answers 0 with a success code.
    """

    def call(self, kind: QueryKind, argument: Optional[str], capacity: int, preclear: bool = False) -> NativeReply:
        if kind == QueryKind.EXPAND_TEMPLATE:
            text = os.path.expandvars(argument)
            required = len(text) + 1
            if capacity >= required:
                return NativeReply(size=required, data=text)
            return NativeReply(size=required)

        if kind == QueryKind.LOOKUP_VARIABLE:
            text = os.environ.get(argument) if argument else None
            if text is None:
                return NativeReply(size=0, error_code=ERROR_ENVVAR_NOT_FOUND)
            return self._fill(text, capacity)

        if kind == QueryKind.CURRENT_DIRECTORY:
            try:
                text = os.getcwd()
            except OSError as e:
                logger.debug(f"Current directory is unavailable: {e}")
                return NativeReply(size=0, error_code=e.errno or 1)
            return self._fill(text, capacity)

        if kind == QueryKind.SEARCH_PATH_DIRECTORY:
            if not _search_path_directory:
                return NativeReply(size=0)
            return self._fill(_search_path_directory, capacity)

        raise ValueError(f"Unsupported query kind: {kind}")

    def _fill(self, text: str, capacity: int) -> NativeReply:
        """Answer a call whose success count excludes the terminator."""
        if capacity > len(text):
            return NativeReply(size=len(text), data=text)
        return NativeReply(size=len(text) + 1)

    def set_search_path_directory(self, path: Optional[str]) -> bool:
        global _search_path_directory
        _search_path_directory = path or ""
        return True


_default_backend: Optional[NativeBackend] = None


def get_default_backend() -> NativeBackend:
    """
    Get the backend for the running platform.

    Returns:
        Win32Backend on Windows, EmulatedBackend elsewhere
    """
    global _default_backend
    if _default_backend is None:
        if sys.platform == 'win32':
            _default_backend = Win32Backend()
        else:
            _default_backend = EmulatedBackend()
        logger.debug(f"Using {type(_default_backend).__name__} for sized queries")
    return _default_backend


# wProcessorArchitecture values reported by GetNativeSystemInfo
PROCESSOR_ARCHITECTURES = {
    0: 'x86',
    5: 'arm',
    6: 'ia64',
    9: 'amd64',
    12: 'arm64',
}


def native_machine() -> str:
    """
    Get the lowercase architecture name of the machine.

    On Windows this asks GetNativeSystemInfo, because platform.machine()
    reports the architecture the interpreter was built for and so says
    'amd64' for an x64 process emulated on an ARM64 machine.
    """
    if sys.platform == 'win32':
        code = get_default_backend().native_processor_architecture()
        return PROCESSOR_ARCHITECTURES.get(code, 'unknown')
    return platform.machine().lower()


def is_running_64bit_process() -> bool:
    """
    Check whether this process runs as a native 64-bit x86 process.

    A 32-bit interpreter, including one running under WOW64 emulation on a
    64-bit machine, is reported as not 64-bit, and so is an x64 interpreter
    emulated on an ARM64 machine.
    """
    if sys.maxsize <= 2 ** 32:
        return False

    return native_machine() in ('amd64', 'x86_64')
