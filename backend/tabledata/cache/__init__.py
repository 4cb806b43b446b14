"""
In-memory caching of loaded record sets
"""
from tabledata.cache.record_cache import CacheEntry, CacheStatistics, RecordCache, value_type_name

__all__ = ['CacheEntry', 'CacheStatistics', 'RecordCache', 'value_type_name']
