"""
Table Data Loader - Async loading of typed record sets with progress tracking

The loader reads table text from a text source, binds it to a record type
off the event loop thread, resolves the type's relationships and keeps the
result in a RecordCache. It is also the RecordSetLoader the relationship
resolver calls for target types that are not loaded yet.
"""
import asyncio
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, Field, computed_field

from config.settings import TableDataSettings
from tabledata.binding import RecordBinder
from tabledata.cache.record_cache import CacheStatistics, RecordCache
from tabledata.conversion.registry import ConversionRegistry, get_default_registry
from tabledata.errors import ErrorSeverity, LoadError, LoadErrorCollection, RecordSourceNotFoundError
from tabledata.relationships.resolver import RelationshipResolver
from tabledata.schema import table_identifier
from tabledata.sources import DirectorySource, TextSource, read_table


class LoadingProgress(BaseModel):
    """Progress of one table load, for UI updates."""
    file_name: str = Field('', description="Table being loaded")
    total_rows: int = Field(0, ge=0, description="Data rows in the table")
    processed_rows: int = Field(0, ge=0, description="Rows bound so far")
    status: str = Field('pending', description="pending, loading, resolving, complete or failed")
    elapsed: float = Field(0.0, ge=0.0, description="Seconds since the load started")
    error_count: int = Field(0, ge=0, description="Diagnostics recorded so far")

    @computed_field
    @property
    def progress(self) -> float:
        """Fraction of rows processed, 1.0 once complete."""
        if self.status == 'complete':
            return 1.0
        if not self.total_rows:
            return 0.0
        return self.processed_rows / self.total_rows


ProgressCallback = Callable[[LoadingProgress], None]
DataLoadedCallback = Callable[[type, List[Any], LoadErrorCollection], None]


class TableDataLoader:
    """
    Loads record sets by type and keeps them for the session.

    Features:
    - Table text is parsed once per type, in a worker thread
    - Relationships resolved through RelationshipResolver
    - Resolved sets cached with their load duration
    - Progress and data-loaded notifications
    """

    def __init__(self, source: TextSource,
                 registry: Optional[ConversionRegistry] = None,
                 settings: Optional[TableDataSettings] = None,
                 cache: Optional[RecordCache] = None):
        """
        Initialize the loader.

        Args:
            source: Where table text is read from
            registry: Converters for cell text (defaults to the shared registry)
            settings: Table format and relationship depth
            cache: Cache for resolved record sets (a private one if None)
        """
        self.source = source
        self.registry = registry or get_default_registry()
        self.settings = settings or TableDataSettings()
        self.cache = cache if cache is not None else RecordCache()
        self.resolver = RelationshipResolver(self, self.settings.max_relationship_depth)

        # Bound (but not necessarily resolved) records per type
        self._records: Dict[type, List[Any]] = {}
        self._errors: Dict[type, LoadErrorCollection] = {}
        self._progress: Dict[type, LoadingProgress] = {}
        self._store_lock = threading.Lock()
        self._load_locks: Dict[type, asyncio.Lock] = {}

        self._data_loaded_callbacks: List[DataLoadedCallback] = []
        self._progress_callbacks: List[ProgressCallback] = []

    @classmethod
    def from_settings(cls, settings: Optional[TableDataSettings] = None,
                      registry: Optional[ConversionRegistry] = None,
                      cache: Optional[RecordCache] = None) -> 'TableDataLoader':
        """
        Build a loader reading tables from ``settings.data_dir``.

        Settings are read from the environment when not given.

        Raises:
            ValueError: If no data directory is configured
        """
        settings = settings or TableDataSettings.from_env()
        if settings.data_dir is None:
            raise ValueError("No data directory configured (set TABLEDATA_DATA_DIR)")
        source = DirectorySource(settings.data_dir, encoding=settings.encoding)
        return cls(source, registry=registry, settings=settings, cache=cache)

    # Listeners

    def on_data_loaded(self, callback: DataLoadedCallback) -> DataLoadedCallback:
        """Register a callback run with (record_type, records, errors) after each table is bound."""
        self._data_loaded_callbacks.append(callback)
        return callback

    def on_loading_progress(self, callback: ProgressCallback) -> ProgressCallback:
        """Register a callback run with a LoadingProgress on every status change."""
        self._progress_callbacks.append(callback)
        return callback

    def off(self, callback: Callable) -> None:
        """Unregister a callback from every notification it was registered for."""
        for callbacks in (self._data_loaded_callbacks, self._progress_callbacks):
            if callback in callbacks:
                callbacks.remove(callback)

    def _notify(self, callbacks: List[Callable], *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in loader callback {callback!r}: {e}")

    def _report(self, progress: LoadingProgress, status: str, started: float,
                callback: Optional[ProgressCallback] = None) -> None:
        progress.status = status
        progress.elapsed = time.perf_counter() - started
        if callback is not None:
            self._notify([callback], progress)
        self._notify(self._progress_callbacks, progress)
        logger.debug(f"Loading {progress.file_name}: {status} "
                     f"({progress.processed_rows}/{progress.total_rows} rows)")

    # Loading

    async def load_typed_set(self, record_type: type) -> List[Any]:
        """
        Get the bound records of a type, parsing its table on first use.

        Relationships are not resolved here. A missing table yields an empty
        list and a CRITICAL diagnostic.
        """
        records = self._records.get(record_type)
        if records is not None:
            return records

        lock = self._load_locks.setdefault(record_type, asyncio.Lock())
        async with lock:
            records = self._records.get(record_type)
            if records is not None:
                return records

            progress = self._progress_for(record_type)
            records, errors = await asyncio.to_thread(self._bind_table, record_type, progress)

            with self._store_lock:
                self._records[record_type] = records
                self._errors[record_type] = errors

        progress.error_count = len(errors)
        errors.log(progress.file_name)
        self._notify(self._data_loaded_callbacks, record_type, records, errors)
        return records

    def _progress_for(self, record_type: type) -> LoadingProgress:
        progress = self._progress.get(record_type)
        if progress is None:
            progress = LoadingProgress(file_name=table_identifier(record_type))
            self._progress[record_type] = progress
        return progress

    def _bind_table(self, record_type: type, progress: LoadingProgress):
        """Read and bind one table. Runs in a worker thread."""
        table_name = table_identifier(record_type)
        errors = LoadErrorCollection()

        try:
            text = read_table(self.source, table_name)
        except RecordSourceNotFoundError as e:
            errors.add(LoadError(row=0, column='', severity=ErrorSeverity.CRITICAL, message=str(e)))
            return [], errors
        except Exception as e:
            errors.add(LoadError(row=0, column='', severity=ErrorSeverity.CRITICAL,
                                 message=f"Failed to read table '{table_name}': {e}"))
            return [], errors

        def on_row(processed: int, total: int):
            progress.processed_rows = processed
            progress.total_rows = total

        binder = RecordBinder(record_type, self.registry)
        return binder.bind_text(
            text,
            delimiter=self.settings.delimiter,
            quote_char=self.settings.quote_char,
            comment_prefix=self.settings.comment_prefix,
            on_progress=on_row,
        )

    async def load_with_relationships(self, record_type: type,
                                      progress: Optional[ProgressCallback] = None) -> List[Any]:
        """
        Load a type and resolve its relationships, caching the result.

        Args:
            record_type: Record type to load
            progress: Optional callback for this load's progress updates

        Returns:
            The resolved record list (shared with the cache)
        """
        if self.cache.contains(record_type):
            return self.cache.get(record_type)

        started = time.perf_counter()
        status = self._progress_for(record_type)
        self._report(status, 'loading', started, progress)

        try:
            records = await self.load_typed_set(record_type)

            self._report(status, 'resolving', started, progress)
            await self.resolver.resolve(records)
        except Exception as e:
            logger.error(f"Failed to load {record_type.__name__}: {e}")
            self._report(status, 'failed', started, progress)
            raise

        duration = time.perf_counter() - started
        self.cache.set(record_type, records, load_duration=duration)

        status.error_count = len(self.get_errors(record_type))
        final_status = 'failed' if self.get_errors(record_type).has_critical_errors else 'complete'
        self._report(status, final_status, started, progress)

        logger.info(f"Loaded {len(records)} {record_type.__name__} records in {duration:.3f}s")
        return records

    async def preload_all(self, *record_types: type,
                          progress: Optional[ProgressCallback] = None) -> Dict[type, List[Any]]:
        """Load several types in order, resolving relationships for each."""
        loaded = {}
        for record_type in record_types:
            loaded[record_type] = await self.load_with_relationships(record_type, progress)
        logger.info(f"Preloaded {len(loaded)} record types")
        return loaded

    async def force_reload(self, record_type: type,
                           progress: Optional[ProgressCallback] = None) -> List[Any]:
        """Drop everything known about a type and load it again."""
        self._forget(record_type)
        return await self.load_with_relationships(record_type, progress)

    def _forget(self, record_type: type) -> None:
        with self._store_lock:
            self._records.pop(record_type, None)
            self._errors.pop(record_type, None)
            self._progress.pop(record_type, None)
        self.cache.remove(record_type)

    # Queries

    def get(self, record_type: type) -> List[Any]:
        """Records of a type already loaded, or an empty list."""
        records = self.cache.get(record_type)
        if records is not None:
            return records
        return self._records.get(record_type, [])

    def is_loaded(self, record_type: type) -> bool:
        return record_type in self._records or self.cache.contains(record_type)

    def get_errors(self, record_type: type) -> LoadErrorCollection:
        return self._errors.get(record_type) or LoadErrorCollection()

    def get_loading_progress(self, record_type: type) -> Optional[LoadingProgress]:
        return self._progress.get(record_type)

    def has_any_data(self) -> bool:
        return bool(self._records) or len(self.cache) > 0

    def loaded_type_names(self) -> List[str]:
        return sorted(record_type.__name__ for record_type in self._records)

    def cache_statistics(self) -> CacheStatistics:
        return self.cache.statistics()

    def get_cache_info(self) -> str:
        """Cache statistics followed by one line per loaded type."""
        lines = [self.cache_statistics().get_summary(), "Loaded types:"]
        for record_type in sorted(self._records, key=lambda t: t.__name__):
            errors = self.get_errors(record_type)
            lines.append(f"  {record_type.__name__} ({table_identifier(record_type)}): "
                         f"{len(self._records[record_type])} records, {len(errors)} diagnostics")
        return "\n".join(lines)

    def clear_cache(self) -> None:
        """Forget every loaded type and clear the cache."""
        with self._store_lock:
            self._records.clear()
            self._errors.clear()
            self._progress.clear()
        self.cache.clear()
        logger.info("Cleared all loaded table data")
