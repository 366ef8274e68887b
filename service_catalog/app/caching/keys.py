"""
Cache key layout shared by both caching strategies.
"""

DEFAULT_NAMESPACE = "product"
COLLECTION_SUFFIX = "all"
SEPARATOR = "::"


def item_key(product_id: int, namespace: str = DEFAULT_NAMESPACE) -> str:
    """Per-record key, e.g. ``product::42``."""
    return f"{namespace}{SEPARATOR}{product_id}"


def collection_key(namespace: str = DEFAULT_NAMESPACE) -> str:
    """Key holding the full product list, ``product::all``."""
    return f"{namespace}{SEPARATOR}{COLLECTION_SUFFIX}"


def namespace_pattern(namespace: str = DEFAULT_NAMESPACE) -> str:
    """Glob pattern matching every key in a namespace."""
    return f"{namespace}{SEPARATOR}*"
