"""
Accounts package: local registration and login.

Users are stored as one collection in the local store and the active
session is a single ``{"userId": ...}`` record. ``router`` exposes the
service to the local web front-end.
"""
