"""
API route modules.

This package contains subrouters for:
- Forums: listing, creation, moderators, topic listings, counters, topic moves
- Board: new messages feed and board statistics

Routers are included from forum_api.api.main (under the /api/v1 prefix).
"""
