"""
Template compilation cache.

``TemplateCache`` is the entry point for rendering. For every call it
resolves which type owns the template, makes sure a fresh compiled
artifact exists on disk, makes sure the procedure loaded in this
process matches that artifact, and runs it.

An artifact is stale when it is missing or older than either its
source or the compiler itself. An artifact written by a different
compiler version is also stale; that is noticed when it is loaded.
Stale artifacts are rebuilt under the compile lock of the source file;
the new text is written to a temporary file in the artifact directory
and moved into place with ``os.replace``, so readers only ever see
complete artifacts.
"""

import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from ..codegen.generator import CodeGenerator, compiler_mtime_ns
from ..context import StencilContext, ensure_context_initialized
from ..layout import ProjectLayout
from ..resolver import OwnerResolver, Resolution
from ..types import TemplateDescriptor
from ..utils.config import StencilConfig, get_config
from ..utils.constants import COMPILER_VERSION, TEMP_ARTIFACT_SUFFIX, CompilationStatus
from ..utils.exceptions import TemplateIOError, TemplateNotFound
from ..utils.logging import StencilLogger
from ..utils.naming import template_identity
from .loader import CompiledArtifact, RenderProcedure, read_compiler_version
from .locking import compile_lock
from .registry import LoadedTemplate
from .template_runtime import Sink, TemplateRuntime, View


class TemplateCache:
    """
    Compiles, caches, loads and renders templates.

    One instance may be shared by any number of threads; separate
    processes sharing a generated root coordinate through file locks.
    """

    def __init__(
        self,
        layout: Optional[ProjectLayout] = None,
        context: Optional[StencilContext] = None,
        config: Optional[StencilConfig] = None,
        generator: Optional[CodeGenerator] = None,
    ):
        """
        Initialize the cache.

        Args:
            layout: Source and artifact locations (default: from config)
            context: Context owning the registries (default: global context)
            config: Configuration (default: global configuration)
            generator: Code generator (default: one built from config)
        """
        self.config = config or get_config()
        self.layout = layout or ProjectLayout.from_config(self.config)
        self.context = context or ensure_context_initialized()

        self.types = self.context.get_type_registry()
        self.visitors = self.context.get_visitor_registry()
        self.loaded = self.context.get_loaded_templates()

        self.resolver = OwnerResolver(
            self.types, self.layout, cache_results=not self.config.is_auto_reload()
        )
        self.generator = generator or CodeGenerator(
            self.visitors,
            check_visitors=self.config.compilation.check_visitors,
            indent_size=self.config.compilation.indent_size,
        )
        self.lock_timeout = self.config.cache.lock_timeout_seconds
        self.compiler_mtime_ns = compiler_mtime_ns()

        self._stats = {'renders': 0, 'hits': 0, 'compiles': 0, 'races': 0, 'loads': 0}
        self._stats_lock = threading.Lock()
        self._log = StencilLogger(__name__)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(
        self,
        type_id: str,
        name: str,
        args: Iterable[Any] = (),
        sink: Optional[Sink] = None,
        context: Any = None,
        instance: Any = None,
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Render template ``name`` of ``type_id`` into ``sink``.

        Args:
            type_id: Type the template is requested for
            name: Template name
            args: Positional template arguments
            sink: Callable receiving string chunks in document order
            context: Rendering context (see RenderContext)
            instance: Object bound to ``self`` inside the template
            kwargs: Keyword template arguments

        Raises:
            TemplateNotFound: If no ancestor of ``type_id`` has the template
            CompileError: If the template source is malformed
            VisitorNotRegistered: If the template uses an unknown visitor
            LockTimeoutError: If the compile lock could not be acquired
            TemplateIOError: If reading or publishing an artifact fails
        """
        if sink is None:
            raise TypeError("render() requires a sink")
        self._count('renders')
        self.view(type_id, name, *tuple(args), instance=instance, **(kwargs or {}))(sink, context)

    def view(self, type_id: str, name: str, *args: Any, instance: Any = None, **kwargs: Any) -> View:
        """
        Deferred view of a template.

        The template is loaded when the view is called, so views can be
        passed around (for example to ``<%! ... %>`` calls) before any
        compilation happens.
        """
        def _view(sink: Sink, ctx: Any) -> None:
            loaded = self.load(type_id, name)
            runtime = TemplateRuntime(self, type_id, instance, self.visitors)
            loaded.procedure(instance, runtime, *args, **kwargs)(sink, ctx)

        return _view

    def render_to_string(self, type_id: str, name: str, *args: Any, context: Any = None,
                         instance: Any = None, **kwargs: Any) -> str:
        """Render into a string instead of a sink."""
        chunks = []
        self.render(type_id, name, args, chunks.append, context, instance=instance, kwargs=kwargs)
        return "".join(chunks)

    # ------------------------------------------------------------------
    # Loading and compilation
    # ------------------------------------------------------------------

    def load(self, type_id: str, name: str) -> LoadedTemplate:
        """Return the loaded procedure for the template, compiling and loading as needed."""
        entry = self._load_artifact(self.compile(type_id, name), name)
        if entry.procedure.compiler_version != COMPILER_VERSION:
            self._log.log_cache_miss(str(entry.descriptor), "compiler version changed")
            entry = self._load_artifact(self.compile(type_id, name, check_version=True), name)
        return entry

    def _load_artifact(self, artifact: CompiledArtifact, name: str) -> LoadedTemplate:
        descriptor = TemplateDescriptor(artifact.owner, name)

        def _load() -> RenderProcedure:
            procedure = RenderProcedure.load_from_file(artifact.path)
            self._count('loads')
            self._log.log_load(str(descriptor), str(artifact.path))
            return procedure

        entry, _ = self.loaded.get_or_load(descriptor, artifact.mtime_ns, _load)
        return entry

    def compile(self, type_id: str, name: str, check_version: bool = False) -> CompiledArtifact:
        """
        Make sure a fresh artifact exists for the template and return it.

        Freshness is decided by modification times alone unless
        ``check_version`` is set, in which case an artifact written by
        another compiler version is rebuilt too.

        Raises:
            TemplateNotFound: If no ancestor of ``type_id`` has the template
        """
        resolution = self._resolve(type_id, name)
        identity = template_identity(resolution.owner, name)
        artifact_path = self.layout.artifact_path(resolution.owner, name)

        reason = self._staleness(self._source_mtime(resolution), artifact_path, check_version)
        if reason is None:
            self._count('hits')
            self._log.log_cache_hit(identity)
            return self._artifact(resolution, name, artifact_path, compiled=False)

        self._log.log_cache_miss(identity, reason)
        with compile_lock(resolution.source_path, self.lock_timeout):
            source_mtime = self._source_mtime(resolution)
            status = CompilationStatus.RACED
            if self._staleness(source_mtime, artifact_path, check_version) is not None:
                self._compile_and_publish(resolution, name, artifact_path, source_mtime)
                status = CompilationStatus.COMPILED
            else:
                self._count('races')
                self._log.log_race_lost(identity)
            return self._artifact(resolution, name, artifact_path, compiled=status is CompilationStatus.COMPILED)

    def is_stale(self, type_id: str, name: str) -> bool:
        """Whether the next render of the template would recompile it."""
        resolution = self._resolve(type_id, name)
        artifact_path = self.layout.artifact_path(resolution.owner, name)
        return self._staleness(self._source_mtime(resolution), artifact_path, check_version=True) is not None

    def clear_loaded(self) -> None:
        """Forget loaded procedures and cached resolutions (auto reload only)."""
        self.loaded.clear()
        self.resolver.invalidate()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with render, hit, compile, race and load counters
        """
        with self._stats_lock:
            stats = dict(self._stats)
        stats['loaded_templates'] = len(self.loaded)
        stats['generated_root'] = str(self.layout.generated_root)
        return stats

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, type_id: str, name: str) -> Resolution:
        resolution = self.resolver.resolve(type_id, name)
        if resolution is None:
            raise TemplateNotFound(type_id, name, list(self.types.ancestors(type_id)))
        return resolution

    def _source_mtime(self, resolution: Resolution) -> int:
        try:
            return os.stat(resolution.source_path).st_mtime_ns
        except FileNotFoundError:
            self.resolver.invalidate(name=resolution.source_path.stem)
            raise TemplateNotFound(resolution.owner, resolution.source_path.stem) from None
        except OSError as e:
            raise TemplateIOError(f"Failed to stat template source: {e}", str(resolution.source_path)) from e

    def _staleness(self, source_mtime_ns: int, artifact_path: Path, check_version: bool = False) -> Optional[str]:
        """Reason the artifact must be rebuilt, or None if it is fresh."""
        try:
            artifact_mtime_ns = os.stat(artifact_path).st_mtime_ns
        except FileNotFoundError:
            return "artifact missing"
        except OSError as e:
            raise TemplateIOError(f"Failed to stat compiled template: {e}", str(artifact_path)) from e
        if source_mtime_ns > artifact_mtime_ns:
            return "source changed"
        if self.compiler_mtime_ns > artifact_mtime_ns:
            return "compiler changed"
        if check_version and read_compiler_version(artifact_path) != COMPILER_VERSION:
            return "compiler version changed"
        return None

    def _artifact(self, resolution: Resolution, name: str, artifact_path: Path, compiled: bool) -> CompiledArtifact:
        try:
            mtime_ns = os.stat(artifact_path).st_mtime_ns
        except OSError as e:
            raise TemplateIOError(f"Failed to stat compiled template: {e}", str(artifact_path)) from e
        return CompiledArtifact(artifact_path, resolution.source_path, resolution.owner, name, mtime_ns, compiled)

    def _compile_and_publish(self, resolution: Resolution, name: str, artifact_path: Path,
                             source_mtime_ns: int) -> None:
        identity = template_identity(resolution.owner, name)
        self._log.log_compile_start(identity, str(resolution.source_path))
        start = time.perf_counter()

        try:
            with open(resolution.source_path, "r", encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            raise TemplateIOError(f"Failed to read template source: {e}", str(resolution.source_path)) from e

        text = self.generator.compile_template(source, resolution.owner, name, str(resolution.source_path))
        # a replaced artifact must get a new mtime so loaded procedures notice it
        min_mtime_ns = max(source_mtime_ns, self.compiler_mtime_ns, self._previous_mtime(artifact_path) + 1)
        self._publish(artifact_path, text, min_mtime_ns)

        self._count('compiles')
        self._log.log_compile_done(identity, time.perf_counter() - start, len(text))
        self._log.log_publish(identity, str(artifact_path))

    def _publish(self, artifact_path: Path, text: str, min_mtime_ns: int) -> None:
        """Atomically write ``text`` to ``artifact_path``."""
        try:
            artifact_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=artifact_path.name + ".", suffix=TEMP_ARTIFACT_SUFFIX, dir=artifact_path.parent
            )
        except OSError as e:
            raise TemplateIOError(f"Failed to create compiled template: {e}", str(artifact_path)) from e

        published = False
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            self._raise_mtime(tmp_name, min_mtime_ns)
            os.replace(tmp_name, artifact_path)
            published = True
        except OSError as e:
            raise TemplateIOError(f"Failed to publish compiled template: {e}", str(artifact_path)) from e
        finally:
            if not published:
                self._discard(tmp_name)

    @staticmethod
    def _previous_mtime(artifact_path: Path) -> int:
        try:
            return os.stat(artifact_path).st_mtime_ns
        except FileNotFoundError:
            return -1
        except OSError as e:
            raise TemplateIOError(f"Failed to stat compiled template: {e}", str(artifact_path)) from e

    @staticmethod
    def _raise_mtime(path: str, min_mtime_ns: int) -> None:
        """Keep the artifact from looking older than its inputs when the clock trails them."""
        st = os.stat(path)
        if st.st_mtime_ns < min_mtime_ns:
            os.utime(path, ns=(st.st_atime_ns, min_mtime_ns))

    def _discard(self, path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self._log.logger.warning(f"Failed to remove temporary file {path}: {e}")

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1
