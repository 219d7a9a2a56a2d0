"""
Services module.
Store and query logic used by the API routers:
- issues: Issue store, list filtering/pagination and serialization
- comments: Comment store attached to issues
- dashboard: Aggregate counts and the recent-activity feed
"""
