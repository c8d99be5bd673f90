"""
Search Package

Query preprocessing, result ranking, caching and analytics for the
troubleshooting search endpoint.
"""
