"""Wisdom Hub backend API package.

Do not add import-time side effects here; settings and the database engine are
created when ``wisdom_api.core`` modules are first imported.
"""
