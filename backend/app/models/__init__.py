"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: User account and authentication model
- Issue: Tracked issue with status, priority and assignment
- IssueTag: Tag rows belonging to an Issue
- Comment: Comment attached to an Issue
"""
from .user import User
from .issue import Issue, IssueTag
from .comment import Comment
