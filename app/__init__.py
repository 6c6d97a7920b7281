"""
SecondHome
Student accommodation marketplace backend.

Architecture:
- MongoDB: listings, users, notifications, points of interest
- Moderation gate: admin approve/reject controls public visibility
- AI advisor: listing legitimacy scoring (advisory only, never approves)
"""

__version__ = "1.0.0"
