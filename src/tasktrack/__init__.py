"""TaskTrack — multi-user task tracking API.

Users register, log in, and manage their own to-do items. Admins can see
every user's items. All task access goes through a role-scoped service
layer keyed on the principal resolved from the bearer token.
"""

__version__ = "0.1.0"
