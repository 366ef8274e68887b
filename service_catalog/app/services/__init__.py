"""
Business services for Catalog Service.
"""
