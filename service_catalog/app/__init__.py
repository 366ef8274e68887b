"""
Catalog Service application package.

Fronts the product record store with two cache read paths and announces
every mutation on a change-event channel with dead-letter handling.
"""
