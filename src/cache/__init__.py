from cache.build_cache import BuildCache, CacheEntry, SymbolGraph

__all__ = ["BuildCache", "CacheEntry", "SymbolGraph"]
