"""Authentication and authorization.

Learn: One authentication path: email/password → signed JWT bearer token.
The token only carries the user id. Role and existence are re-read from
the database on every request, so a deleted user's token stops working
immediately and role checks never trust a stale claim.
"""
