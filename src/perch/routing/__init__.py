"""Routing: compiled route table with O(path-depth) matching.

Shared by the backend (endpoint dispatch by method and path) and the
client composer (page resolution by path).
"""
