"""
Cache package for Catalog Service.

Two read paths share the ``product::`` key layout: the declarative
coordinator, which owns all cache policy for reads and mutations, and
the manual cache-aside store, which only reads and repopulates.
"""
