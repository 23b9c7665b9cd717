"""
Healthcare Portal - Gateway Package

Request middleware and the role-scoped resource guard.
"""
