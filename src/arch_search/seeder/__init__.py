"""
Seeder Package

Crawls the wiki page catalog and uploads each page (and its sections) to
the context provider, recording crawl metadata along the way.
"""
