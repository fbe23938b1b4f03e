"""
Core preference coordination.

`PreferenceStore` decides which layer to consult and when to repair the cache
from the persistent store. `registry` owns the single process-wide instance.
"""
