"""Lazy, single-flight loading of optional rendering and packaging libraries.

Responsibilities:
- Import heavy third-party modules on first use rather than at CLI start-up.
- Share one in-flight load between concurrent callers.
- Report a failed load as `CapabilityUnavailableError` so no partial
  artifact is produced.

Lifecycle per capability: `UNLOADED -> LOADING -> READY | FAILED`.
`READY` is never reset; `FAILED` is retried by the next `ensure_ready` call.
"""

from __future__ import annotations

from enum import Enum
import importlib
import threading
from types import ModuleType
from typing import Sequence

from loguru import logger

from .errors import CapabilityUnavailableError


class CapabilityState(str, Enum):
    """Load state of one capability."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class Capability:
    """One lazily imported group of modules."""

    def __init__(self, name: str, module_names: Sequence[str], hint: str | None = None) -> None:
        """Initialize capability metadata without importing anything."""

        self.name = name
        self._module_names = tuple(module_names)
        self._hint = hint
        self._lock = threading.Lock()
        self._state = CapabilityState.UNLOADED
        self._modules: dict[str, ModuleType] = {}
        self._failure: str | None = None

    @property
    def state(self) -> CapabilityState:
        return self._state

    def ensure_ready(self) -> dict[str, ModuleType]:
        """Load the capability once and return its modules keyed by import name.

        Raises:
            CapabilityUnavailableError: When any module fails to import.
        """

        if self._state is CapabilityState.READY:
            return self._modules

        with self._lock:
            # A concurrent caller may have finished the load while we waited.
            if self._state is CapabilityState.READY:
                return self._modules
            self._state = CapabilityState.LOADING
            try:
                modules = {
                    module_name: importlib.import_module(module_name)
                    for module_name in self._module_names
                }
            except ImportError as exc:
                self._state = CapabilityState.FAILED
                self._failure = str(exc)
                logger.error("Capability {name} failed to load: {exc}", name=self.name, exc=exc)
                raise CapabilityUnavailableError(
                    capability=self.name,
                    detail=f"Capability `{self.name}` is unavailable: {exc}",
                    hint=self._hint,
                ) from exc
            self._modules = modules
            self._state = CapabilityState.READY
            logger.debug("Capability {name} ready", name=self.name)
            return self._modules

    def module(self, module_name: str) -> ModuleType:
        """Return one loaded module, loading the capability first when needed."""

        return self.ensure_ready()[module_name]


MARKDOWN_CAPABILITY = Capability(
    "markdown",
    ("markdown", "emoji"),
    hint="Install the `markdown` and `emoji` packages.",
)
DOCX_CAPABILITY = Capability(
    "docx",
    ("docx", "docx.shared"),
    hint="Install the `python-docx` package.",
)
