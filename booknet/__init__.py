"""
BookNet - social book lending.

Members share books they own, borrow books others share, return them,
and owners approve the returns. Every request goes through one auth
pipeline: bearer token → AuthContext → access policy → service.
"""

__version__ = "0.1.0"
